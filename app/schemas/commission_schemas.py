from pydantic import BaseModel


class CommissionStatusUpdate(BaseModel):
    status: str  # paid | cancelled
