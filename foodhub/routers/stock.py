from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from foodhub.core.database import get_db
from foodhub.core.errors import FoodHubError, to_http_exception
from foodhub.deps import RestaurantAccess, require_owner
from foodhub.models.inventory import Inventory, InventoryLog
from foodhub.services.stock import add_stock, inventory_values, list_inventory, list_inventory_logs

router = APIRouter(prefix="/api/restaurants/{slug}/stock", tags=["stock"])


class StockCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    quantity: int = Field(..., gt=0)
    unit: Optional[str] = Field(default=None, max_length=20)
    reason: Optional[str] = Field(default=None, max_length=255)
    cost: int = Field(0, ge=0)


class StockLogRead(BaseModel):
    id: int
    inventory_id: int
    name: Optional[str]
    change: int
    reason: str
    cost: int
    created_by: int
    created_at: Optional[datetime]


def _item_to_dict(item: Inventory, total_value: int) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "quantity": item.quantity,
        "unit": item.unit,
        "total_value": total_value,
        "last_updated": item.last_updated,
    }


def _log_to_dict(log: InventoryLog) -> dict:
    return {
        "id": log.id,
        "inventory_id": log.inventory_id,
        "name": log.inventory.name if log.inventory else None,
        "change": log.change,
        "reason": log.reason,
        "cost": log.cost,
        "created_by": log.created_by,
        "created_at": log.created_at,
    }


@router.get("")
def list_stock(access: RestaurantAccess = Depends(require_owner), db: Session = Depends(get_db)):
    values = inventory_values(db, access.restaurant.id)
    items = [_item_to_dict(item, values.get(item.id, 0)) for item in list_inventory(db, access.restaurant.id)]
    return {"items": items, "total_value": sum(values.values())}


@router.post("", status_code=201)
def create_stock(
    payload: StockCreate,
    access: RestaurantAccess = Depends(require_owner),
    db: Session = Depends(get_db),
):
    try:
        item, log = add_stock(
            db,
            restaurant_id=access.restaurant.id,
            name=payload.name,
            quantity=payload.quantity,
            created_by=access.user.id,
            unit=payload.unit,
            reason=payload.reason,
            cost=payload.cost,
        )
    except FoodHubError as exc:
        raise to_http_exception(exc) from exc
    total_value = inventory_values(db, access.restaurant.id).get(item.id, 0)
    return {"item": _item_to_dict(item, total_value), "log": _log_to_dict(log)}


@router.get("/logs", response_model=List[StockLogRead])
def list_stock_logs(
    inventory_id: Optional[int] = Query(None),
    access: RestaurantAccess = Depends(require_owner),
    db: Session = Depends(get_db),
):
    return [_log_to_dict(log) for log in list_inventory_logs(db, access.restaurant.id, inventory_id)]
