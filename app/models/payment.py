from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Optional
from datetime import datetime
from enum import Enum


class PaymentType(str, Enum):
    order = "order"
    contract = "contract"
    refund = "refund"


class PaymentStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"


# methods
METHOD_CONTRACT_WALLET = "contract-wallet"


class Payment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="user.id", index=True)
    order_id: Optional[int] = Field(default=None, index=True)
    contract_id: Optional[int] = Field(default=None, index=True)

    type: PaymentType
    method: str  # razorpay | contract-wallet
    status: PaymentStatus = Field(default=PaymentStatus.pending)

    amount: float
    commission: float = Field(default=0)

    tx_ref: Optional[str] = Field(default=None, index=True)
    gateway_reference: Optional[str] = Field(default=None, unique=True, index=True)
    gateway_transaction_id: Optional[str] = Field(default=None, index=True)
    gateway_response: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
