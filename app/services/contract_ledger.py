"""
Contract ledger: the only code allowed to change ``Contract.remaining_balance``.

Balance changes are single conditional UPDATE statements against the contract
row, issued inside the caller's transaction. The payment row written next to
them commits or rolls back together with the balance change.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy import case, update
from sqlmodel import Session, select

from app.config import settings
from app.exceptions import (
    BusinessRuleViolation,
    ContractAlreadyActive,
    ContractNotFound,
    InsufficientBalance,
    InvalidInput,
    NotFound,
    Unauthorized,
)
from app.models.contract import Contract
from app.models.lounge import Lounge
from app.models.payment import Payment, PaymentStatus, PaymentType
from app.models.user import User

logger = logging.getLogger(__name__)


def get_usable_contract(
    session: Session,
    *,
    contract_id: Optional[int],
    user_id: int,
    lounge_id: int,
    now: Optional[datetime] = None,
) -> Contract:
    now = now or datetime.utcnow()

    if contract_id is None:
        raise ContractNotFound()

    contract = session.exec(
        select(Contract)
        .where(Contract.id == contract_id)
        .where(Contract.user_id == user_id)
        .where(Contract.lounge_id == lounge_id)
        .where(Contract.is_active == True)  # noqa: E712
        .where(Contract.is_expired == False)  # noqa: E712
    ).first()

    if not contract:
        raise ContractNotFound()

    if not contract.is_usable(now):
        # lapsed but not yet swept; lookups run before any order rows are
        # written, so committing here only persists the flag
        contract.is_expired = True
        contract.updated_at = now
        session.add(contract)
        session.commit()
        logger.info(f"Contract {contract_id} expired at {contract.expires_at}")
        raise ContractNotFound()

    return contract


def debit(
    session: Session,
    contract: Contract,
    amount: float,
    now: Optional[datetime] = None,
) -> Contract:
    """
    Take ``amount`` off the balance, or raise InsufficientBalance.

    The WHERE clause re-checks the balance on the row itself, so two
    concurrent debits can never both pass on a stale read.
    """
    now = now or datetime.utcnow()

    if amount <= 0:
        raise InvalidInput("Debit amount must be positive")

    result = session.exec(
        update(Contract)
        .where(Contract.id == contract.id)
        .where(Contract.is_active == True)  # noqa: E712
        .where(Contract.is_expired == False)  # noqa: E712
        .where(Contract.expires_at > now)
        .where(Contract.remaining_balance >= amount)
        .values(
            remaining_balance=Contract.remaining_balance - amount,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        raise InsufficientBalance()

    session.refresh(contract)
    logger.info(
        f"Debited {amount} from contract {contract.id}, remaining {contract.remaining_balance}"
    )
    return contract


def credit(session: Session, contract: Contract, amount: float) -> Contract:
    """Give ``amount`` back to the balance, capped at the contract total."""
    if amount <= 0:
        raise InvalidInput("Credit amount must be positive")

    credited = Contract.remaining_balance + amount

    session.exec(
        update(Contract)
        .where(Contract.id == contract.id)
        .values(
            remaining_balance=case(
                (credited > Contract.total_amount, Contract.total_amount),
                else_=credited,
            ),
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    session.refresh(contract)
    logger.info(
        f"Credited {amount} to contract {contract.id}, remaining {contract.remaining_balance}"
    )
    return contract


def activate(session: Session, contract_id: int) -> bool:
    """Flip is_active once. Returns True only for the call that flipped it."""
    result = session.exec(
        update(Contract)
        .where(Contract.id == contract_id)
        .where(Contract.is_active == False)  # noqa: E712
        .values(is_active=True, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    activated = result.rowcount == 1
    if activated:
        logger.info(f"Contract {contract_id} activated")
    return activated


def create_contract(
    session: Session,
    *,
    user: User,
    lounge_id: int,
    total_amount: float,
    duration_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Tuple[Contract, Payment]:
    now = now or datetime.utcnow()
    duration = duration_days or settings.CONTRACT_DURATION_DAYS

    if not total_amount or total_amount <= 0:
        raise InvalidInput("Invalid amount")

    lounge = session.get(Lounge, lounge_id)
    if not lounge or not lounge.is_active:
        raise NotFound("Lounge not found")

    existing = session.exec(
        select(Contract)
        .where(Contract.user_id == user.id)
        .where(Contract.lounge_id == lounge_id)
        .where(Contract.is_active == True)  # noqa: E712
        .where(Contract.is_expired == False)  # noqa: E712
        .where(Contract.expires_at > now)
    ).first()

    if existing:
        raise ContractAlreadyActive()

    try:
        payment = Payment(
            user_id=user.id,
            amount=total_amount,
            type=PaymentType.contract,
            method=settings.PAYMENT_GATEWAY,
            status=PaymentStatus.pending,
        )
        session.add(payment)
        session.flush()

        contract = Contract(
            user_id=user.id,
            lounge_id=lounge_id,
            total_amount=total_amount,
            remaining_balance=total_amount,
            start_date=now,
            expires_at=now + timedelta(days=duration),
            is_active=False,
            payment_id=payment.id,
        )
        session.add(contract)
        session.flush()

        payment.contract_id = contract.id
        session.add(payment)

        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(contract)
    session.refresh(payment)

    logger.info(f"Contract {contract.id} created for user {user.id}, payment {payment.id} pending")
    return contract, payment


def renew_contract(
    session: Session,
    *,
    user: User,
    contract_id: int,
    amount: float,
    duration_days: Optional[int] = None,
) -> Tuple[Contract, Payment]:
    """
    Top up and extend a contract.

    Expiry is extended from the stored ``expires_at``, also for a contract
    that has already lapsed.
    """
    duration = duration_days or settings.CONTRACT_DURATION_DAYS

    contract = session.get(Contract, contract_id)
    if not contract:
        raise NotFound("Contract not found")

    if contract.user_id != user.id:
        raise Unauthorized("Not authorized to renew this contract")

    if not amount or amount <= 0:
        raise InvalidInput("Invalid amount")

    try:
        # serialize renewals on the row; populate_existing drops a stale read
        locked = session.exec(
            select(Contract)
            .where(Contract.id == contract.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).one()

        payment = Payment(
            user_id=user.id,
            amount=amount,
            type=PaymentType.contract,
            method=settings.PAYMENT_GATEWAY,
            status=PaymentStatus.pending,
            contract_id=locked.id,
        )
        session.add(payment)

        result = session.exec(
            update(Contract)
            .where(Contract.id == locked.id)
            .where(Contract.expires_at == locked.expires_at)
            .values(
                total_amount=Contract.total_amount + amount,
                remaining_balance=Contract.remaining_balance + amount,
                renewal_count=Contract.renewal_count + 1,
                expires_at=locked.expires_at + timedelta(days=duration),
                is_expired=False,
                is_active=True,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise BusinessRuleViolation("Contract was renewed concurrently, please retry")

        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(contract)
    session.refresh(payment)

    logger.info(
        f"Contract {contract.id} renewed (+{amount}), expires {contract.expires_at}"
    )
    return contract, payment


def expire_contracts(session: Session, now: Optional[datetime] = None) -> int:
    now = now or datetime.utcnow()

    result = session.exec(
        update(Contract)
        .where(Contract.is_expired == False)  # noqa: E712
        .where(Contract.expires_at <= now)
        .values(is_expired=True, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    session.commit()
    return result.rowcount
