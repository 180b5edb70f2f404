from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

import orders
from auth import get_current_user, require_admin

router = APIRouter(prefix="/api/orders", tags=["orders"])


class CreateOrderRequest(BaseModel):
    shipping_address: Optional[str] = None
    payment_method: Optional[str] = None


class StatusUpdate(BaseModel):
    status: str
    # Required to move an order out of `cancelled`
    reactivate: bool = False


@router.post("", status_code=201)
def create_order(body: CreateOrderRequest, user: dict = Depends(get_current_user)):
    return orders.create_order(user, body.shipping_address, body.payment_method)


@router.get("/my-orders")
def my_orders(user: dict = Depends(get_current_user)):
    return orders.list_user_orders(user["id"])


@router.get("")
def all_orders(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin: dict = Depends(require_admin),
):
    return orders.list_orders(status, page, limit)


@router.get("/stats/overview")
def stats(admin: dict = Depends(require_admin)):
    return orders.order_stats()


@router.delete("/cleanup")
def cleanup(admin: dict = Depends(require_admin)):
    deleted = orders.sweep_cancelled_orders()
    return {
        "detail": f"Deleted {deleted} cancelled orders older than {orders.ORDER_RETENTION_DAYS} days",
        "deleted_count": deleted,
    }


@router.get("/{order_id}")
def get_order(order_id: str, user: dict = Depends(get_current_user)):
    return orders.get_order(order_id, user)


@router.patch("/{order_id}/status")
def update_status(order_id: str, body: StatusUpdate, admin: dict = Depends(require_admin)):
    return orders.update_order_status(order_id, body.status, reactivate=body.reactivate)


@router.patch("/{order_id}/cancel")
def cancel(order_id: str, user: dict = Depends(get_current_user)):
    return orders.cancel_order(order_id, user)


@router.patch("/{order_id}/admin-cancel")
def admin_cancel(order_id: str, admin: dict = Depends(require_admin)):
    return orders.admin_cancel_order(order_id)
