from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class Food(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    lounge_id: int = Field(foreign_key="lounge.id", index=True)

    name: str
    description: Optional[str] = None
    category: str = Field(default="lunch")  # breakfast | lunch | dinner | snacks | drinks | dessert
    image: Optional[str] = None

    price: float
    estimated_time: int = Field(default=15)  # minutes
    is_available: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
