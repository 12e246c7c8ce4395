from datetime import datetime
from typing import Optional

from sqlmodel import Session, select

from app.exceptions import BusinessRuleViolation, InvalidInput, NotFound, Unauthorized
from app.models.commission import Commission, CommissionStatus
from app.models.lounge import Lounge
from app.models.user import User, UserRole


def list_commissions_query(
    session: Session,
    *,
    user: User,
    lounge_id: Optional[int] = None,
    status: Optional[CommissionStatus] = None,
):
    query = select(Commission)

    if user.role == UserRole.LOUNGE:
        lounge_ids = session.exec(
            select(Lounge.id).where(Lounge.owner_id == user.id)
        ).all()
        query = query.where(Commission.lounge_id.in_(lounge_ids))
    elif user.role != UserRole.ADMIN:
        raise Unauthorized()
    elif lounge_id:
        query = query.where(Commission.lounge_id == lounge_id)

    if status:
        query = query.where(Commission.status == status)

    return query.order_by(Commission.created_at.desc())


def update_commission_status(
    session: Session,
    *,
    commission_id: int,
    status: str,
) -> Commission:
    """Admin settlement: pending -> paid | cancelled."""
    try:
        new_status = CommissionStatus(status.lower())
    except ValueError:
        raise InvalidInput("Invalid status")

    if new_status == CommissionStatus.pending:
        raise InvalidInput("Invalid status")

    commission = session.get(Commission, commission_id)
    if not commission:
        raise NotFound("Commission not found")

    if commission.status != CommissionStatus.pending:
        raise BusinessRuleViolation(f"Commission already {commission.status.value}")

    commission.status = new_status
    if new_status == CommissionStatus.paid:
        commission.paid_at = datetime.utcnow()

    session.add(commission)
    session.commit()
    session.refresh(commission)
    return commission
