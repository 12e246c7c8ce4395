from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.database import get_session
from app.dependencies.roles import require_admin, require_staff
from app.models.commission import CommissionStatus
from app.models.user import User
from app.schemas.commission_schemas import CommissionStatusUpdate
from app.services import commission_service
from app.utils.pagination import paginate

router = APIRouter()


@router.get("")
def list_commissions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    lounge_id: Optional[int] = None,
    status: Optional[CommissionStatus] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_staff),
):
    query = commission_service.list_commissions_query(
        session, user=current_user, lounge_id=lounge_id, status=status
    )
    return paginate(session=session, query=query, page=page, limit=limit)


@router.put("/{commission_id}/status")
def update_commission_status(
    commission_id: int,
    data: CommissionStatusUpdate,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    commission = commission_service.update_commission_status(
        session, commission_id=commission_id, status=data.status
    )
    return {
        "message": "Commission status updated successfully",
        "data": commission,
    }
