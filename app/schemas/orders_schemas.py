from pydantic import BaseModel, Field
from typing import List, Optional

from app.models.order import OrderStatus


class OrderItemIn(BaseModel):
    food_id: int
    quantity: int = Field(ge=1, le=100)


class OrderCreate(BaseModel):
    lounge_id: int
    items: List[OrderItemIn] = Field(min_length=1)
    payment_method: str          # contract | razorpay
    contract_id: Optional[int] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    reason: Optional[str] = Field(default=None, max_length=500)


class OrderCancel(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class VerifyQRSchema(BaseModel):
    qr_code: str = Field(min_length=10, max_length=200)


