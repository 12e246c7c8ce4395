import logging

from app.notifications.rules import NOTIFICATION_RULES, PUSH_TEMPLATES
from app.notifications.channels import Channel
from app.notifications.events import OrderEvent
from app.services.notification_service import create_notification, record_push
from app.services.push_service import get_push_sender
from app.models.notifications import RecipientRole

logger = logging.getLogger(__name__)


def build_push(event: OrderEvent, **context) -> dict:
    title, body = PUSH_TEMPLATES.get(
        event, ("Order Update", "Your order #{order_id} was updated.")
    )
    return {"title": title, "body": body.format(**context)}


def _send_user_push(event, user, context, related_id, session, is_order):
    push = build_push(event, **context)

    try:
        delivered = get_push_sender().send(
            user.fcm_token,
            push,
            {
                "type": "order_status" if is_order else "contract",
                "event": event.value,
                **{k: v for k, v in context.items() if v is not None},
            },
        )
    except Exception:
        logger.exception(f"User push failed for {event.value} #{related_id}")
        delivered = False

    record_push(
        session=session,
        user=user,
        trigger_source=event.value,
        related_id=related_id,
        push=push,
        delivered=delivered,
    )


def dispatch_order_event(
    *,
    event: OrderEvent,
    order=None,
    contract=None,
    user,
    session,
    extra: dict | None = None,
    notify_user: bool = True,
    notify_admin: bool = True,
):
    """
    Central notification dispatcher.

    Handles:
    - user push notification (logged as a customer notification row)
    - admin in-app notifications

    Runs after the business transaction has committed. Failures are logged
    and never reach the caller.
    """

    rules = NOTIFICATION_RULES.get(event, {})
    extra = extra or {}

    related_id = getattr(order, "id", None) or getattr(contract, "id", None)
    context = {
        "order_id": getattr(order, "id", None),
        "contract_id": getattr(contract, "id", None),
    }

    try:
        # -------------------------
        # USER PUSH
        # -------------------------
        if notify_user and rules.get(Channel.PUSH_USER) and user and user.fcm_token:
            _send_user_push(event, user, context, related_id, session, order is not None)

        # -------------------------
        # ADMIN IN-APP NOTIFICATION
        # -------------------------
        if notify_admin and rules.get(Channel.INAPP_ADMIN):
            create_notification(
                session=session,
                recipient_role=RecipientRole.admin,
                user=None,
                trigger_source=event.value,
                related_id=related_id,
                title=extra.get("admin_title", "Order Update"),
                content=extra.get("admin_content", ""),
            )

        session.commit()
    except Exception:
        logger.exception(f"Notification dispatch failed for {event.value} #{related_id}")
        session.rollback()
