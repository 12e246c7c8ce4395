from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from app.database import get_session
from app.dependencies.roles import get_commission_rate, require_staff
from app.models.order import Order, OrderStatus
from app.models.order_item import OrderItem
from app.models.user import User
from app.schemas.orders_schemas import (
    OrderCancel,
    OrderCreate,
    OrderStatusUpdate,
    VerifyQRSchema,
)
from app.services import order_service
from app.services.order_service import RequestedItem
from app.utils.pagination import paginate
from app.utils.token import get_current_user

router = APIRouter()


def order_out(session: Session, order: Order, include_qr: bool = True) -> dict:
    items = session.exec(
        select(OrderItem).where(OrderItem.order_id == order.id)
    ).all()

    data = {
        "id": order.id,
        "user_id": order.user_id,
        "lounge_id": order.lounge_id,
        "status": order.status,
        "total_price": order.total_price,
        "commission": order.commission,
        "payment_method": order.payment_method,
        "payment_id": order.payment_id,
        "contract_id": order.contract_id,
        "notes": order.notes,
        "cancellation_reason": order.cancellation_reason,
        "delivered_at": order.delivered_at,
        "created_at": order.created_at,
        "items": [
            {
                "food_id": i.food_id,
                "name": i.name,
                "price": i.price,
                "quantity": i.quantity,
                "subtotal": i.subtotal,
                "estimated_time": i.estimated_time,
            }
            for i in items
        ],
    }

    if include_qr:
        data["qr_code"] = order.qr_code
        data["qr_code_image"] = order.qr_code_image

    return data


@router.post("", status_code=201)
def create_order(
    data: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    commission_rate: float = Depends(get_commission_rate),
):
    order = order_service.create_order(
        session,
        user=current_user,
        lounge_id=data.lounge_id,
        items=[RequestedItem(food_id=i.food_id, quantity=i.quantity) for i in data.items],
        payment_method=data.payment_method,
        contract_id=data.contract_id,
        commission_rate=commission_rate,
        notes=data.notes,
    )

    return {
        "message": "Order created successfully",
        "data": order_out(session, order),
    }


@router.get("")
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[OrderStatus] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    query = order_service.list_orders_query(session, user=current_user, status=status)
    return paginate(
        session=session,
        query=query,
        page=page,
        limit=limit,
        serialize=lambda o: order_out(session, o, include_qr=False),
    )


@router.post("/verify-qr")
def verify_qr(
    data: VerifyQRSchema,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_staff),
):
    order = order_service.verify_qr_and_deliver(
        session, user=current_user, qr_code=data.qr_code
    )
    return {
        "message": "Order verified and marked as delivered",
        "data": order_out(session, order, include_qr=False),
    }


@router.get("/{order_id}")
def get_order(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = order_service.get_order(session, user=current_user, order_id=order_id)
    # the pickup token is only for the customer
    return {"data": order_out(session, order, include_qr=order.user_id == current_user.id)}


@router.put("/{order_id}/status")
def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_staff),
):
    order = order_service.update_order_status(
        session,
        user=current_user,
        order_id=order_id,
        status=data.status,
        reason=data.reason,
    )
    return {
        "message": "Order status updated successfully",
        "data": order_out(session, order, include_qr=False),
    }


@router.post("/{order_id}/cancel")
def cancel_order(
    order_id: int,
    data: OrderCancel,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = order_service.cancel_order(
        session, user=current_user, order_id=order_id, reason=data.reason
    )
    return {
        "message": "Order cancelled",
        "data": order_out(session, order, include_qr=False),
    }
