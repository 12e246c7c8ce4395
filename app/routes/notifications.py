from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from app.database import get_session
from app.dependencies.roles import require_admin
from app.models.notifications import Notification, RecipientRole
from app.models.user import User
from app.services.notification_service import admin_feed_query
from app.utils.pagination import paginate

router = APIRouter()


def notification_out(n: Notification) -> dict:
    return {
        "notification_id": n.id,
        "title": n.title,
        "content": n.content,
        "trigger_source": n.trigger_source,
        "related_id": n.related_id,
        "channel": n.channel,
        "status": n.status,
        "created_at": n.created_at,
    }


@router.get("")
def list_admin_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    trigger_source: Optional[str] = None,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    return paginate(
        session=session,
        query=admin_feed_query(trigger_source=trigger_source),
        page=page,
        limit=limit,
        serialize=notification_out,
    )


@router.get("/{notification_id}")
def view_notification(
    notification_id: int,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    notification = session.get(Notification, notification_id)

    if not notification or notification.recipient_role != RecipientRole.admin:
        raise HTTPException(404, "Notification not found")

    return {"data": notification_out(notification)}
