from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


# ---------- ENUMS (SAFE FOR SQLMODEL) ----------

class RecipientRole(str, Enum):
    admin = "admin"
    customer = "customer"
    lounge = "lounge"


class NotificationChannel(str, Enum):
    push = "push"
    system = "system"


class NotificationStatus(str, Enum):
    sent = "sent"
    failed = "failed"


# ---------- MODEL ----------

class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    recipient_role: RecipientRole
    user_id: Optional[int] = None

    trigger_source: str  # order_placed / payment_success / ...
    related_id: Optional[int] = None     # order_id or payment_id

    title: str
    content: str

    channel: NotificationChannel = NotificationChannel.system
    status: NotificationStatus = NotificationStatus.sent

    created_at: datetime = Field(default_factory=datetime.utcnow)
