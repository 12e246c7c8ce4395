import json
import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from app.config import settings
from app.exceptions import (
    BusinessRuleViolation,
    InvalidInput,
    InvalidPaymentMethod,
    NotFound,
    Unauthorized,
)
from app.models.contract import Contract
from app.models.order import Order, OrderStatus
from app.models.payment import (
    METHOD_CONTRACT_WALLET,
    Payment,
    PaymentStatus,
    PaymentType,
)
from app.models.user import User, UserRole
from app.notifications import OrderEvent, dispatch_order_event
from app.services import contract_ledger
from app.services.payment_gateway import CheckoutHandle

logger = logging.getLogger(__name__)

CONTRACT_METHOD = "contract"

# statuses a gateway capture can still settle
SETTLEABLE_STATUSES = (PaymentStatus.pending, PaymentStatus.failed)


def select_payment(
    session: Session,
    *,
    method: str,
    price: float,
    commission: float,
    user_id: int,
    lounge_id: int,
    contract_id: Optional[int] = None,
) -> Payment:
    """
    Create the payment that funds an order, inside the caller's transaction.

    ``contract``: debit the wallet now, payment is born completed.
    gateway id: payment is born pending and settles through reconcile_payment.
    """
    if method == CONTRACT_METHOD:
        contract = contract_ledger.get_usable_contract(
            session,
            contract_id=contract_id,
            user_id=user_id,
            lounge_id=lounge_id,
        )
        contract_ledger.debit(session, contract, price)

        payment = Payment(
            user_id=user_id,
            amount=price,
            commission=commission,
            type=PaymentType.order,
            method=METHOD_CONTRACT_WALLET,
            status=PaymentStatus.completed,
            contract_id=contract.id,
        )
    elif method == settings.PAYMENT_GATEWAY:
        payment = Payment(
            user_id=user_id,
            amount=price,
            commission=commission,
            type=PaymentType.order,
            method=settings.PAYMENT_GATEWAY,
            status=PaymentStatus.pending,
        )
    else:
        raise InvalidPaymentMethod()

    session.add(payment)
    session.flush()
    return payment


def _payer(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
        "email": user.email or f"{user.phone}@campuseats.app",
    }


def initialize_payment(
    session: Session,
    *,
    user: User,
    payment_id: int,
    gateway,
) -> CheckoutHandle:
    payment = session.get(Payment, payment_id)

    if not payment:
        raise NotFound("Payment not found")

    if payment.user_id != user.id:
        raise Unauthorized()

    if payment.status == PaymentStatus.completed:
        raise BusinessRuleViolation("Payment already completed")

    if payment.status != PaymentStatus.pending:
        raise BusinessRuleViolation(f"Payment is {payment.status.value}")

    if payment.method != gateway.name:
        raise InvalidPaymentMethod("Payment is not settled through the gateway")

    # reuse the open gateway order so one payment never has two live checkouts
    if payment.gateway_reference:
        return CheckoutHandle(
            gateway_reference=payment.gateway_reference,
            amount=payment.amount,
            currency=settings.CURRENCY,
            key_id=gateway.key_id,
        )

    reference = f"{settings.QR_PREFIX}-{int(time.time() * 1000)}-{payment.id}"

    handle = gateway.initialize(
        amount=payment.amount,
        payer=_payer(user),
        reference=reference,
    )

    payment.tx_ref = reference
    payment.gateway_reference = handle.gateway_reference
    payment.updated_at = datetime.utcnow()
    session.add(payment)
    session.commit()
    session.refresh(payment)

    logger.info(f"Payment {payment.id} initialized with gateway order {handle.gateway_reference}")
    return handle


def _advance_order(session: Session, order_id: Optional[int]) -> bool:
    if order_id is None:
        return False

    result = session.exec(
        update(Order)
        .where(Order.id == order_id)
        .where(Order.status == OrderStatus.pending)
        .values(status=OrderStatus.preparing, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def reconcile_payment(
    session: Session,
    *,
    payment: Payment,
    gateway,
    transaction_id: Optional[str] = None,
) -> Payment:
    """
    Single source of truth for settling gateway payments.

    Safe to call any number of times from the webhook and from user polls:
    the flip to completed/failed is a conditional update and only the caller
    that performs it runs the side effect.

    A ``failed`` payment is still checked: a capture reported later by the
    gateway is real money and completes it.
    """
    if payment.status not in SETTLEABLE_STATUSES:
        return payment

    if not payment.gateway_reference:
        # never sent to the gateway, nothing to ask about
        return payment

    # network failures raise UpstreamFailure and leave the payment untouched
    verification = gateway.verify(payment.gateway_reference)

    now = datetime.utcnow()

    if verification.status == "pending":
        return payment

    if not verification.success:
        if payment.status != PaymentStatus.pending:
            return payment

        result = session.exec(
            update(Payment)
            .where(Payment.id == payment.id)
            .where(Payment.status == PaymentStatus.pending)
            .values(
                status=PaymentStatus.failed,
                gateway_response=verification.data,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        session.commit()
        session.refresh(payment)
        if result.rowcount == 1:
            logger.info(f"Payment {payment.id} failed at gateway")
        return payment

    previous_status = payment.status

    try:
        result = session.exec(
            update(Payment)
            .where(Payment.id == payment.id)
            .where(Payment.status.in_(SETTLEABLE_STATUSES))
            .values(
                status=PaymentStatus.completed,
                gateway_transaction_id=verification.transaction_id or transaction_id,
                gateway_response=verification.data,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            # another delivery of the same event got here first
            session.rollback()
            session.refresh(payment)
            return payment

        contract_activated = False
        order_advanced = False

        if payment.type == PaymentType.contract and payment.contract_id:
            contract_activated = contract_ledger.activate(session, payment.contract_id)
        elif payment.type == PaymentType.order:
            order_advanced = _advance_order(session, payment.order_id)

        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(payment)
    logger.info(f"Payment {payment.id} completed ({payment.type.value}), was {previous_status.value}")

    if payment.type == PaymentType.order and not order_advanced:
        # e.g. the order was cancelled while the payment sat failed
        logger.warning(f"Payment {payment.id} captured but order {payment.order_id} was not pending")

    _notify_settlement(session, payment, contract_activated, order_advanced)
    return payment


def _notify_settlement(session, payment, contract_activated, order_advanced):
    user = session.get(User, payment.user_id)

    if order_advanced:
        order = session.get(Order, payment.order_id)
        dispatch_order_event(
            event=OrderEvent.PREPARING,
            order=order,
            user=user,
            session=session,
            notify_admin=False,
        )
        dispatch_order_event(
            event=OrderEvent.PAYMENT_SUCCESS,
            order=order,
            user=user,
            session=session,
            notify_user=False,
            extra={
                "admin_title": "Payment Received",
                "admin_content": f"Payment {payment.id} for order #{order.id}",
            },
        )
    elif contract_activated:
        contract = session.get(Contract, payment.contract_id)
        dispatch_order_event(
            event=OrderEvent.CONTRACT_ACTIVATED,
            contract=contract,
            user=user,
            session=session,
            extra={
                "admin_title": "Contract Activated",
                "admin_content": f"Contract #{contract.id} funded by payment {payment.id}",
            },
        )


def verify_payment(
    session: Session,
    *,
    user: User,
    payment_id: int,
    gateway,
) -> Payment:
    """User-initiated poll."""
    payment = session.get(Payment, payment_id)

    if not payment:
        raise NotFound("Payment not found")

    if payment.user_id != user.id and user.role != UserRole.ADMIN:
        raise Unauthorized()

    return reconcile_payment(session, payment=payment, gateway=gateway)


def handle_webhook(
    session: Session,
    *,
    body: bytes,
    signature: Optional[str],
    gateway,
) -> Optional[Payment]:
    """
    Razorpay webhook. The body is only used to find the payment; the outcome
    always comes from gateway.verify.

    Returns None for a signed event about an order this service never opened,
    so the gateway gets an acknowledgement instead of retrying forever.
    """
    if not signature:
        raise InvalidInput("Missing webhook signature")

    try:
        raw = body.decode("utf-8")
    except UnicodeDecodeError:
        raise InvalidInput("Malformed webhook payload")

    gateway.verify_webhook_signature(raw, signature)

    try:
        event = json.loads(raw)
        entity = event["payload"]["payment"]["entity"]
        gateway_reference = entity["order_id"]
    except (ValueError, KeyError, TypeError):
        raise InvalidInput("Malformed webhook payload")

    logger.info(f"Gateway webhook received: {event.get('event')} for {gateway_reference}")

    payment = session.exec(
        select(Payment).where(Payment.gateway_reference == gateway_reference)
    ).first()

    if not payment:
        logger.warning(f"Ignoring webhook for unknown reference: {gateway_reference}")
        return None

    if payment.status == PaymentStatus.completed:
        logger.info(f"Payment already completed: {gateway_reference}")
        return payment

    return reconcile_payment(
        session,
        payment=payment,
        gateway=gateway,
        transaction_id=entity.get("id"),
    )


def list_payments(
    session: Session,
    *,
    user: User,
    type: Optional[str] = None,
    status: Optional[str] = None,
):
    query = select(Payment).where(Payment.user_id == user.id)

    if type:
        query = query.where(Payment.type == type)
    if status:
        query = query.where(Payment.status == status)

    return query.order_by(Payment.created_at.desc())
