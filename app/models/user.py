from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    USER = "USER"
    LOUNGE = "LOUNGE"
    ADMIN = "ADMIN"


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    phone: str = Field(index=True)
    email: Optional[str] = None
    password: Optional[str] = None
    role: UserRole = Field(default=UserRole.USER)
    can_login: bool = Field(default=True)
    fcm_token: Optional[str] = None  # push device token
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def first_name(self) -> str:
        return self.name.split(" ")[0]

    @property
    def last_name(self) -> str:
        return " ".join(self.name.split(" ")[1:]) or "User"
