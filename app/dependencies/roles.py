from fastapi import Depends, HTTPException
from app.config import settings
from app.models.user import User, UserRole
from app.utils.token import get_current_user


def require_roles(*roles: UserRole):
    def checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in roles:
            raise HTTPException(status_code=403, detail="Not authorized")
        return current_user
    return checker


require_admin = require_roles(UserRole.ADMIN)
require_staff = require_roles(UserRole.LOUNGE, UserRole.ADMIN)


def get_commission_rate() -> float:
    return settings.COMMISSION_RATE
