from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from foodhub.core.database import get_db
from foodhub.core.errors import FoodHubError, to_http_exception
from foodhub.deps import RestaurantAccess, require_staff
from foodhub.models.order import Order
from foodhub.models.order_item import OrderItem
from foodhub.services.orders import (
    add_item_to_table,
    add_order_item,
    compute_bill,
    get_order,
    list_orders,
    resolve_open_order,
)

router = APIRouter(prefix="/api/restaurants/{slug}/orders", tags=["orders"])


class OrderResolve(BaseModel):
    table_id: int
    customer_name: Optional[str] = Field(default=None, max_length=120)
    guest_count: Optional[int] = Field(default=None, ge=1)


class OrderItemCreate(BaseModel):
    menu_id: int
    # validated in the service so the error carries its own type
    quantity: int = 1


class TableItemCreate(OrderItemCreate):
    table_id: int
    customer_name: Optional[str] = Field(default=None, max_length=120)
    guest_count: Optional[int] = Field(default=None, ge=1)


def _order_to_dict(o: Order) -> Dict[str, Any]:
    table = o.table
    return {
        "id": o.id,
        "restaurant_id": o.restaurant_id,
        "table_id": o.table_id,
        "table_number": table.table_number if table else None,
        "customer_name": o.customer_name,
        "guest_count": o.guest_count,
        "status": o.status,
        "paid_at": o.paid_at.isoformat() if o.paid_at else None,
        "created_at": o.created_at.isoformat() if o.created_at else None,
    }


def _order_item_to_dict(item: OrderItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "order_id": item.order_id,
        "menu_id": item.menu_id,
        "name": item.name,
        "quantity": item.quantity,
        "unit_price": item.unit_price,
        "line_total": item.line_total,
        "created_at": item.created_at.isoformat() if item.created_at else None,
    }


def _order_detail(o: Order) -> Dict[str, Any]:
    bill = compute_bill(o)
    data = _order_to_dict(o)
    data["items"] = [_order_item_to_dict(item) for item in o.order_items]
    data["subtotal"] = bill.subtotal
    payment = o.payment
    data["payment_id"] = payment.id if payment else None
    return data


@router.get("")
def list_restaurant_orders(
    status: Optional[Literal["unpaid", "paid"]] = Query(default=None),
    access: RestaurantAccess = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return [_order_to_dict(o) for o in list_orders(db, access.restaurant.id, status=status)]


@router.post("/resolve")
def resolve_order(
    payload: OrderResolve,
    access: RestaurantAccess = Depends(require_staff),
    db: Session = Depends(get_db),
):
    try:
        order = resolve_open_order(
            db,
            table_id=payload.table_id,
            restaurant_id=access.restaurant.id,
            customer_name=payload.customer_name,
            guest_count=payload.guest_count,
        )
    except FoodHubError as exc:
        raise to_http_exception(exc) from exc
    return _order_detail(order)


@router.post("/items", status_code=201)
def add_item_for_table(
    payload: TableItemCreate,
    access: RestaurantAccess = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Staff flow: pick a table and a dish; the open order is found or created."""
    try:
        order, order_item = add_item_to_table(
            db,
            table_id=payload.table_id,
            restaurant_id=access.restaurant.id,
            menu_id=payload.menu_id,
            quantity=payload.quantity,
            customer_name=payload.customer_name,
            guest_count=payload.guest_count,
        )
    except FoodHubError as exc:
        raise to_http_exception(exc) from exc
    return {"order": _order_to_dict(order), "item": _order_item_to_dict(order_item)}


@router.post("/{order_id}/items", status_code=201)
def add_item(
    order_id: int,
    payload: OrderItemCreate,
    access: RestaurantAccess = Depends(require_staff),
    db: Session = Depends(get_db),
):
    try:
        order_item = add_order_item(
            db,
            order_id=order_id,
            menu_id=payload.menu_id,
            quantity=payload.quantity,
            restaurant_id=access.restaurant.id,
        )
    except FoodHubError as exc:
        raise to_http_exception(exc) from exc
    return _order_item_to_dict(order_item)


@router.get("/{order_id}")
def get_order_detail(
    order_id: int,
    access: RestaurantAccess = Depends(require_staff),
    db: Session = Depends(get_db),
):
    try:
        order = get_order(db, order_id, access.restaurant.id)
    except FoodHubError as exc:
        raise to_http_exception(exc) from exc
    return _order_detail(order)
