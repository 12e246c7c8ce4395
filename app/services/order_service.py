import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from app.constants.order_status import ALLOWED_TRANSITIONS
from app.exceptions import (
    AlreadyDelivered,
    BusinessRuleViolation,
    InvalidInput,
    InvalidStatusTransition,
    ItemNotFound,
    ItemUnavailable,
    NotFound,
    Unauthorized,
)
from app.models.commission import Commission, CommissionStatus
from app.models.contract import Contract
from app.models.food import Food
from app.models.lounge import Lounge
from app.models.order import Order, OrderStatus
from app.models.order_item import OrderItem
from app.models.payment import (
    METHOD_CONTRACT_WALLET,
    Payment,
    PaymentStatus,
    PaymentType,
)
from app.models.user import User, UserRole
from app.notifications import OrderEvent, dispatch_order_event
from app.services import contract_ledger
from app.services.payment_service import CONTRACT_METHOD, select_payment
from app.utils.qr import generate_qr_data, generate_qr_image, parse_qr_data

logger = logging.getLogger(__name__)


@dataclass
class RequestedItem:
    food_id: int
    quantity: int


@dataclass
class PricedOrder:
    items: List[OrderItem]
    total_price: float


def price_items(session: Session, lounge_id: int, items: List[RequestedItem]) -> PricedOrder:
    """
    Price the order from the live catalog. One bad item rejects the whole order.
    """
    if not items:
        raise InvalidInput("Order must contain at least one item")

    total_price = 0
    snapshot = []

    for item in items:
        if item.quantity < 1:
            raise InvalidInput("Quantity must be at least 1")

        food = session.get(Food, item.food_id)

        if not food or food.lounge_id != lounge_id:
            raise ItemNotFound(f"Food item {item.food_id} not found")

        if not food.is_available:
            raise ItemUnavailable(f"{food.name} is not available")

        subtotal = food.price * item.quantity
        total_price += subtotal

        snapshot.append(
            OrderItem(
                food_id=food.id,
                name=food.name,
                price=food.price,
                quantity=item.quantity,
                subtotal=subtotal,
                estimated_time=food.estimated_time,
            )
        )

    return PricedOrder(items=snapshot, total_price=total_price)


def create_order(
    session: Session,
    *,
    user: User,
    lounge_id: int,
    items: List[RequestedItem],
    payment_method: str,
    commission_rate: float,
    contract_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> Order:
    """
    Place an order.

    Pricing, payment (wallet debit or pending gateway payment), order rows,
    QR token and commission record are committed as one transaction.
    """
    lounge = session.get(Lounge, lounge_id)
    if not lounge or not lounge.is_active:
        raise NotFound("Lounge not found")

    if not 0 <= commission_rate < 1:
        raise InvalidInput("Commission rate must be a fraction")

    priced = price_items(session, lounge_id, items)
    total_price = priced.total_price
    commission = total_price * commission_rate

    try:
        payment = select_payment(
            session,
            method=payment_method,
            price=total_price,
            commission=commission,
            user_id=user.id,
            lounge_id=lounge_id,
            contract_id=contract_id,
        )

        order = Order(
            user_id=user.id,
            lounge_id=lounge_id,
            total_price=total_price,
            commission=commission,
            status=OrderStatus.pending,
            payment_method=payment_method,
            payment_id=payment.id,
            contract_id=payment.contract_id if payment_method == CONTRACT_METHOD else None,
            notes=notes,
        )
        session.add(order)
        session.flush()

        for item in priced.items:
            item.order_id = order.id
            session.add(item)

        # QR needs the order id
        order.qr_code = generate_qr_data(order.id)
        order.qr_code_image = generate_qr_image(order.qr_code)
        session.add(order)

        payment.order_id = order.id
        session.add(payment)

        session.add(
            Commission(
                order_id=order.id,
                lounge_id=lounge_id,
                amount=commission,
                rate=commission_rate,
                order_amount=total_price,
            )
        )

        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(
        f"Order {order.id} created by user {user.id}: total {total_price}, "
        f"method {payment_method}, payment {payment.id} {payment.status.value}"
    )

    dispatch_order_event(
        event=OrderEvent.ORDER_PLACED,
        order=order,
        user=user,
        session=session,
        extra={
            "admin_title": "New Order Placed",
            "admin_content": f"Order #{order.id} placed at {lounge.name}",
        },
    )

    return order


# -------------------------
# READ
# -------------------------

def _owns_lounge(session: Session, user: User, lounge_id: int) -> bool:
    lounge = session.get(Lounge, lounge_id)
    return bool(lounge and lounge.owner_id == user.id)


def get_order(session: Session, *, user: User, order_id: int) -> Order:
    order = session.get(Order, order_id)

    if not order:
        raise NotFound("Order not found")

    if (
        user.role != UserRole.ADMIN
        and order.user_id != user.id
        and not _owns_lounge(session, user, order.lounge_id)
    ):
        raise Unauthorized("Not authorized to view this order")

    return order


def list_orders_query(session: Session, *, user: User, status: Optional[OrderStatus] = None):
    query = select(Order)

    if user.role == UserRole.USER:
        query = query.where(Order.user_id == user.id)
    elif user.role == UserRole.LOUNGE:
        lounge_ids = session.exec(
            select(Lounge.id).where(Lounge.owner_id == user.id)
        ).all()
        query = query.where(Order.lounge_id.in_(lounge_ids))

    if status:
        query = query.where(Order.status == status)

    return query.order_by(Order.created_at.desc())


# -------------------------
# STATUS
# -------------------------

def _apply_cancellation(session: Session, order: Order, reason: Optional[str]):
    """Undo the money side of an order. Runs inside the caller's transaction."""
    order.cancellation_reason = reason

    commission = session.exec(
        select(Commission).where(Commission.order_id == order.id)
    ).first()
    if commission and commission.status == CommissionStatus.pending:
        commission.status = CommissionStatus.cancelled
        session.add(commission)

    payment = session.get(Payment, order.payment_id) if order.payment_id else None
    if not payment:
        return

    if payment.method == METHOD_CONTRACT_WALLET and payment.status == PaymentStatus.completed:
        contract = session.get(Contract, payment.contract_id)
        contract_ledger.credit(session, contract, payment.amount)

        payment.status = PaymentStatus.refunded
        payment.updated_at = datetime.utcnow()
        session.add(payment)

        session.add(
            Payment(
                user_id=order.user_id,
                order_id=order.id,
                contract_id=contract.id,
                amount=payment.amount,
                type=PaymentType.refund,
                method=METHOD_CONTRACT_WALLET,
                status=PaymentStatus.completed,
            )
        )
        logger.info(f"Refunded {payment.amount} to contract {contract.id} for order {order.id}")

    elif payment.status == PaymentStatus.pending:
        payment.status = PaymentStatus.failed
        payment.updated_at = datetime.utcnow()
        session.add(payment)

    elif payment.status == PaymentStatus.completed:
        # gateway refunds are settled by an admin outside this service
        logger.warning(f"Order {order.id} cancelled after gateway payment {payment.id} completed")


_EVENTS = {
    OrderStatus.preparing: OrderEvent.PREPARING,
    OrderStatus.ready: OrderEvent.READY,
    OrderStatus.delivered: OrderEvent.DELIVERED,
    OrderStatus.cancelled: OrderEvent.CANCELLED,
}


def _transition(
    session: Session,
    order: Order,
    new_status: OrderStatus,
    reason: Optional[str] = None,
) -> Order:
    if new_status.value not in ALLOWED_TRANSITIONS.get(order.status.value, []):
        raise InvalidStatusTransition(
            f"Cannot change status from {order.status.value} to {new_status.value}"
        )

    now = datetime.utcnow()

    try:
        result = session.exec(
            update(Order)
            .where(Order.id == order.id)
            .where(Order.status == order.status)
            .values(status=new_status, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise BusinessRuleViolation("Order was updated concurrently, please retry")

        if new_status == OrderStatus.delivered:
            order.delivered_at = now
            session.add(order)

        if new_status == OrderStatus.cancelled:
            _apply_cancellation(session, order, reason)
            session.add(order)

        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(f"Order {order.id} -> {new_status.value}")

    user = session.get(User, order.user_id)
    dispatch_order_event(
        event=_EVENTS[new_status],
        order=order,
        user=user,
        session=session,
        notify_admin=new_status in (OrderStatus.delivered, OrderStatus.cancelled),
        extra={
            "admin_title": f"Order {new_status.value.capitalize()}",
            "admin_content": f"Order #{order.id} is {new_status.value}",
        },
    )
    return order


def update_order_status(
    session: Session,
    *,
    user: User,
    order_id: int,
    status: OrderStatus,
    reason: Optional[str] = None,
) -> Order:
    order = session.get(Order, order_id)

    if not order:
        raise NotFound("Order not found")

    if user.role != UserRole.ADMIN and not _owns_lounge(session, user, order.lounge_id):
        raise Unauthorized("Not authorized to update this order")

    if order.status == OrderStatus.delivered and status == OrderStatus.delivered:
        raise AlreadyDelivered()

    return _transition(session, order, status, reason)


def cancel_order(
    session: Session,
    *,
    user: User,
    order_id: int,
    reason: Optional[str] = None,
) -> Order:
    order = session.get(Order, order_id)

    if not order or order.user_id != user.id:
        raise NotFound("Order not found")

    if order.status != OrderStatus.pending:
        raise BusinessRuleViolation("Only pending orders can be cancelled")

    return _transition(session, order, OrderStatus.cancelled, reason)


# -------------------------
# PICKUP
# -------------------------

def verify_qr_and_deliver(session: Session, *, user: User, qr_code: str) -> Order:
    """
    Resolve a scanned pickup token and hand the order over.

    The stored token is authoritative: a token is only accepted if it matches
    an order's qr_code exactly.
    """
    payload = parse_qr_data(qr_code)

    order = session.exec(
        select(Order).where(Order.qr_code == qr_code.strip())
    ).first()

    if not order or order.id != payload.order_id:
        raise NotFound("Order not found")

    if user.role != UserRole.ADMIN and not _owns_lounge(session, user, order.lounge_id):
        raise Unauthorized("Not authorized to verify this order")

    if order.status == OrderStatus.delivered:
        raise AlreadyDelivered()

    if order.status == OrderStatus.cancelled:
        raise BusinessRuleViolation("Order was cancelled")

    now = datetime.utcnow()

    try:
        result = session.exec(
            update(Order)
            .where(Order.id == order.id)
            .where(Order.status.not_in([OrderStatus.delivered, OrderStatus.cancelled]))
            .values(status=OrderStatus.delivered, delivered_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # the other scan won
            raise AlreadyDelivered()
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(f"Order {order.id} verified by QR and delivered")

    dispatch_order_event(
        event=OrderEvent.DELIVERED,
        order=order,
        user=session.get(User, order.user_id),
        session=session,
        extra={
            "admin_title": "Order Delivered",
            "admin_content": f"Order #{order.id} picked up",
        },
    )
    return order
