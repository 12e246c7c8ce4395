from typing import Optional

from sqlmodel import Session, select

from app.models.notifications import (
    Notification,
    NotificationChannel,
    NotificationStatus,
    RecipientRole,
)
from app.models.user import User


def create_notification(
    *,
    session: Session,
    recipient_role: RecipientRole,
    user: User | None,
    trigger_source: str,
    related_id: int | None,
    title: str,
    content: str,
    channel: NotificationChannel = NotificationChannel.system,
    status: NotificationStatus = NotificationStatus.sent,
) -> Notification:
    notification = Notification(
        recipient_role=recipient_role,
        user_id=user.id if user else None,
        trigger_source=trigger_source,
        related_id=related_id,
        title=title,
        content=content,
        channel=channel,
        status=status,
    )
    session.add(notification)
    session.flush()
    return notification


def record_push(
    *,
    session: Session,
    user: User,
    trigger_source: str,
    related_id: int | None,
    push: dict,
    delivered: bool,
) -> Notification:
    """Keep a row per customer push so failed deliveries can be found later."""
    return create_notification(
        session=session,
        recipient_role=RecipientRole.customer,
        user=user,
        trigger_source=trigger_source,
        related_id=related_id,
        title=push["title"],
        content=push["body"],
        channel=NotificationChannel.push,
        status=NotificationStatus.sent if delivered else NotificationStatus.failed,
    )


def admin_feed_query(
    *,
    trigger_source: Optional[str] = None,
):
    query = select(Notification).where(Notification.recipient_role == RecipientRole.admin)

    if trigger_source:
        query = query.where(Notification.trigger_source == trigger_source)

    return query.order_by(Notification.created_at.desc())
