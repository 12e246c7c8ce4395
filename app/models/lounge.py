from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class Lounge(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    owner_id: int = Field(foreign_key="user.id", index=True)
    description: Optional[str] = None
    logo: Optional[str] = None

    is_approved: bool = Field(default=False)
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
