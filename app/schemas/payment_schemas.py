from pydantic import BaseModel


class PaymentInitializeSchema(BaseModel):
    payment_id: int


class CheckoutResponse(BaseModel):
    payment_id: int
    gateway_order_id: str
    key_id: str
    amount: float
    currency: str
