from sqlmodel import SQLModel, Field , Relationship
from typing import Optional , TYPE_CHECKING

if TYPE_CHECKING:
    from app.models.order import Order

class OrderItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    food_id: int = Field(foreign_key="food.id")

    # snapshot taken when the order is placed
    name: str
    price: float
    quantity: int
    subtotal: float
    estimated_time: int

    order: Optional["Order"] = Relationship(back_populates="items")
