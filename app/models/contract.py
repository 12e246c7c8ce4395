from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint
from typing import Optional
from datetime import datetime


class Contract(SQLModel, table=True):
    """Prepaid balance a user holds against one lounge."""

    __table_args__ = (
        CheckConstraint(
            "remaining_balance >= 0 AND remaining_balance <= total_amount",
            name="ck_contract_balance_range",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    lounge_id: int = Field(foreign_key="lounge.id", index=True)

    total_amount: float
    remaining_balance: float  # 0 <= remaining_balance <= total_amount

    start_date: datetime = Field(default_factory=datetime.utcnow)
    expires_at: datetime

    # inactive until the funding payment completes
    is_active: bool = Field(default=False)
    is_expired: bool = Field(default=False)
    renewal_count: int = Field(default=0)

    payment_id: Optional[int] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def is_usable(self, now: datetime) -> bool:
        return self.is_active and not self.is_expired and now < self.expires_at
