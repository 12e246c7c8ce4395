from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class CommissionStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    cancelled = "cancelled"


class Commission(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", unique=True, index=True)
    lounge_id: int = Field(foreign_key="lounge.id", index=True)

    amount: float
    rate: float  # snapshot of the rate at order time
    order_amount: float

    recipient: str = Field(default="system")
    status: CommissionStatus = Field(default=CommissionStatus.pending)
    paid_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
