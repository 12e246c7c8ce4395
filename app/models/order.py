from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional
from datetime import datetime
from enum import Enum

from app.models.order_item import OrderItem


class OrderStatus(str, Enum):
    pending = "pending"
    preparing = "preparing"
    ready = "ready"
    delivered = "delivered"
    cancelled = "cancelled"


class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    lounge_id: int = Field(foreign_key="lounge.id", index=True)

    total_price: float
    commission: float = Field(default=0)

    status: OrderStatus = Field(default=OrderStatus.pending)

    payment_method: str  # contract | razorpay
    payment_id: Optional[int] = Field(default=None, foreign_key="payment.id")
    contract_id: Optional[int] = Field(default=None, foreign_key="contract.id")

    qr_code: Optional[str] = Field(default=None, unique=True, index=True)
    qr_code_image: Optional[str] = None

    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    delivered_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    items: List["OrderItem"] = Relationship(back_populates="order")
