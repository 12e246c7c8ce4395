from app.notifications.events import OrderEvent
from app.notifications.channels import Channel


NOTIFICATION_RULES = {

    OrderEvent.ORDER_PLACED: {
        Channel.PUSH_USER: True,
        Channel.INAPP_ADMIN: True,
    },

    OrderEvent.PAYMENT_SUCCESS: {
        Channel.PUSH_USER: True,
        Channel.INAPP_ADMIN: True,
    },

    OrderEvent.PREPARING: {
        Channel.PUSH_USER: True,
    },

    OrderEvent.READY: {
        Channel.PUSH_USER: True,
    },

    OrderEvent.DELIVERED: {
        Channel.PUSH_USER: True,
        Channel.INAPP_ADMIN: True,
    },

    OrderEvent.CANCELLED: {
        Channel.PUSH_USER: True,
        Channel.INAPP_ADMIN: True,
    },

    OrderEvent.CONTRACT_ACTIVATED: {
        Channel.PUSH_USER: True,
        Channel.INAPP_ADMIN: True,
    },

}


PUSH_TEMPLATES = {
    OrderEvent.ORDER_PLACED: (
        "Order Placed",
        "Your order #{order_id} has been placed.",
    ),
    OrderEvent.PAYMENT_SUCCESS: (
        "Payment Received",
        "Payment for order #{order_id} was successful.",
    ),
    OrderEvent.PREPARING: (
        "Order Confirmed",
        "Your order #{order_id} is being prepared.",
    ),
    OrderEvent.READY: (
        "Order Ready",
        "Your order #{order_id} is ready for pickup! Show your QR code.",
    ),
    OrderEvent.DELIVERED: (
        "Order Delivered",
        "Your order #{order_id} has been delivered. Enjoy your meal!",
    ),
    OrderEvent.CANCELLED: (
        "Order Cancelled",
        "Your order #{order_id} has been cancelled.",
    ),
    OrderEvent.CONTRACT_ACTIVATED: (
        "Contract Active",
        "Your contract #{contract_id} is now active.",
    ),
}
