from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from app.database import get_session
from app.models.payment import Payment, PaymentStatus, PaymentType
from app.models.user import User
from app.schemas.payment_schemas import CheckoutResponse, PaymentInitializeSchema
from app.services import payment_service
from app.services.payment_gateway import get_payment_gateway
from app.utils.pagination import paginate
from app.utils.token import get_current_user

router = APIRouter()


def payment_out(payment: Payment) -> dict:
    return {
        "id": payment.id,
        "type": payment.type,
        "method": payment.method,
        "status": payment.status,
        "amount": payment.amount,
        "commission": payment.commission,
        "order_id": payment.order_id,
        "contract_id": payment.contract_id,
        "tx_ref": payment.tx_ref,
        "gateway_reference": payment.gateway_reference,
        "gateway_transaction_id": payment.gateway_transaction_id,
        "created_at": payment.created_at,
        "updated_at": payment.updated_at,
    }


@router.post("/initialize", response_model=CheckoutResponse)
def initialize_payment(
    data: PaymentInitializeSchema,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway=Depends(get_payment_gateway),
):
    handle = payment_service.initialize_payment(
        session,
        user=current_user,
        payment_id=data.payment_id,
        gateway=gateway,
    )
    return CheckoutResponse(
        payment_id=data.payment_id,
        gateway_order_id=handle.gateway_reference,
        key_id=handle.key_id,
        amount=handle.amount,
        currency=handle.currency,
    )


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(default=None),
    session: Session = Depends(get_session),
    gateway=Depends(get_payment_gateway),
):
    body = await request.body()

    payment = await run_in_threadpool(
        payment_service.handle_webhook,
        session,
        body=body,
        signature=x_razorpay_signature,
        gateway=gateway,
    )
    if payment is None:
        return {"message": "Event ignored", "status": None}

    return {
        "message": "Payment processed",
        "status": payment.status,
    }


@router.get("/{payment_id}/verify")
def verify_payment(
    payment_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway=Depends(get_payment_gateway),
):
    payment = payment_service.verify_payment(
        session,
        user=current_user,
        payment_id=payment_id,
        gateway=gateway,
    )
    return {
        "status": payment.status,
        "data": payment_out(payment),
    }


@router.get("")
def list_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    type: Optional[PaymentType] = None,
    status: Optional[PaymentStatus] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    query = payment_service.list_payments(
        session, user=current_user, type=type, status=status
    )
    return paginate(
        session=session, query=query, page=page, limit=limit, serialize=payment_out
    )
