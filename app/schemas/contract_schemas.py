from pydantic import BaseModel, Field
from typing import Optional


class ContractCreate(BaseModel):
    lounge_id: int
    total_amount: float = Field(gt=0)
    duration_days: Optional[int] = Field(default=None, ge=1, le=365)


class ContractRenew(BaseModel):
    amount: float = Field(gt=0)
    duration_days: Optional[int] = Field(default=None, ge=1, le=365)
