from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from app.database import get_session
from app.models.contract import Contract
from app.models.user import User, UserRole
from app.schemas.contract_schemas import ContractCreate, ContractRenew
from app.services import contract_ledger
from app.utils.token import get_current_user

router = APIRouter()


def contract_out(contract: Contract) -> dict:
    return {
        "id": contract.id,
        "lounge_id": contract.lounge_id,
        "total_amount": contract.total_amount,
        "remaining_balance": contract.remaining_balance,
        "start_date": contract.start_date,
        "expires_at": contract.expires_at,
        "is_active": contract.is_active,
        "is_expired": contract.is_expired,
        "renewal_count": contract.renewal_count,
        "payment_id": contract.payment_id,
    }


@router.post("", status_code=201)
def create_contract(
    data: ContractCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    contract, payment = contract_ledger.create_contract(
        session,
        user=current_user,
        lounge_id=data.lounge_id,
        total_amount=data.total_amount,
        duration_days=data.duration_days,
    )
    return {
        "message": "Contract created successfully. Complete payment to activate.",
        "data": {
            "contract": contract_out(contract),
            "payment": {
                "id": payment.id,
                "amount": payment.amount,
                "status": payment.status,
            },
        },
    }


@router.get("")
def list_contracts(
    lounge_id: Optional[int] = None,
    status: Optional[str] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    query = select(Contract).where(Contract.user_id == current_user.id)

    if lounge_id:
        query = query.where(Contract.lounge_id == lounge_id)

    if status == "active":
        query = query.where(Contract.is_active == True).where(Contract.is_expired == False)  # noqa: E712
    elif status == "expired":
        query = query.where(Contract.is_expired == True)  # noqa: E712

    contracts = session.exec(query.order_by(Contract.created_at.desc())).all()
    return {"data": [contract_out(c) for c in contracts]}


@router.get("/lounge/{lounge_id}")
def get_lounge_contract(
    lounge_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    contract = session.exec(
        select(Contract)
        .where(Contract.user_id == current_user.id)
        .where(Contract.lounge_id == lounge_id)
        .where(Contract.is_active == True)  # noqa: E712
        .where(Contract.is_expired == False)  # noqa: E712
    ).first()

    if not contract:
        raise HTTPException(404, "No active contract found with this lounge")

    return {"data": contract_out(contract)}


@router.get("/{contract_id}")
def get_contract(
    contract_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    contract = session.get(Contract, contract_id)

    if not contract:
        raise HTTPException(404, "Contract not found")

    if contract.user_id != current_user.id and current_user.role != UserRole.ADMIN:
        raise HTTPException(403, "Not authorized to view this contract")

    return {"data": contract_out(contract)}


@router.post("/{contract_id}/renew")
def renew_contract(
    contract_id: int,
    data: ContractRenew,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    contract, payment = contract_ledger.renew_contract(
        session,
        user=current_user,
        contract_id=contract_id,
        amount=data.amount,
        duration_days=data.duration_days,
    )
    return {
        "message": "Contract renewal initiated. Complete payment to activate.",
        "data": {
            "contract": contract_out(contract),
            "payment": {
                "id": payment.id,
                "amount": payment.amount,
                "status": payment.status,
            },
        },
    }
