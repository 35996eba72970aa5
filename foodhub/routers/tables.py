from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from foodhub.core.database import get_db
from foodhub.deps import RestaurantAccess, require_owner, require_staff
from foodhub.models.order import ORDER_STATUS_UNPAID, Order
from foodhub.models.table import DiningTable

router = APIRouter(prefix="/api/restaurants/{slug}/tables", tags=["tables"])


class TableCreate(BaseModel):
    table_number: int = Field(..., ge=1)
    capacity: int = Field(..., ge=1)


def _table_to_dict(table: DiningTable, open_order_id: int | None = None) -> dict:
    return {
        "id": table.id,
        "restaurant_id": table.restaurant_id,
        "table_number": table.table_number,
        "capacity": table.capacity,
        "open_order_id": open_order_id,
    }


@router.get("")
def list_tables(access: RestaurantAccess = Depends(require_staff), db: Session = Depends(get_db)):
    restaurant_id = access.restaurant.id
    tables = (
        db.query(DiningTable)
        .filter(DiningTable.restaurant_id == restaurant_id)
        .order_by(DiningTable.table_number.asc(), DiningTable.id.asc())
        .all()
    )
    open_orders = {
        table_id: order_id
        for order_id, table_id in db.query(Order.id, Order.table_id)
        .filter(Order.restaurant_id == restaurant_id, Order.status == ORDER_STATUS_UNPAID)
        .all()
    }
    return [_table_to_dict(table, open_orders.get(table.id)) for table in tables]


@router.post("", status_code=201)
def create_table(
    payload: TableCreate,
    access: RestaurantAccess = Depends(require_owner),
    db: Session = Depends(get_db),
):
    restaurant_id = access.restaurant.id
    duplicate = (
        db.query(DiningTable.id)
        .filter(DiningTable.restaurant_id == restaurant_id, DiningTable.table_number == payload.table_number)
        .first()
    )
    if duplicate:
        raise HTTPException(status_code=409, detail=f"Table {payload.table_number} already exists")

    table = DiningTable(
        restaurant_id=restaurant_id,
        table_number=payload.table_number,
        capacity=payload.capacity,
    )
    try:
        db.add(table)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=500, detail="Could not create table") from exc
    db.refresh(table)
    return _table_to_dict(table)


@router.delete("/{table_id}")
def delete_table(
    table_id: int,
    access: RestaurantAccess = Depends(require_owner),
    db: Session = Depends(get_db),
):
    table = (
        db.query(DiningTable)
        .filter(DiningTable.id == table_id, DiningTable.restaurant_id == access.restaurant.id)
        .first()
    )
    if not table:
        raise HTTPException(status_code=404, detail="Table not found")
    if db.query(Order.id).filter(Order.table_id == table.id).first() is not None:
        raise HTTPException(status_code=409, detail="Table has orders and cannot be deleted")

    try:
        db.delete(table)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=500, detail="Could not delete table") from exc
    return {"ok": True}
