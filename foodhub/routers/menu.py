from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from foodhub.core.database import get_db
from foodhub.deps import RestaurantAccess, get_restaurant_or_404, require_owner, require_staff
from foodhub.models.menu_item import MenuItem
from foodhub.models.order_item import OrderItem
from foodhub.services.pricing import effective_price, is_discount_active

router = APIRouter(prefix="/api/restaurants/{slug}/menu", tags=["menu"])
public_router = APIRouter(prefix="/public/{slug}", tags=["public-menu"])


class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    price: int = Field(..., gt=0)
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_available: bool = True


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    price: Optional[int] = Field(default=None, gt=0)
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_available: Optional[bool] = None

    @field_validator("name", "price", "is_available")
    @classmethod
    def _not_null(cls, value):
        # omit a field to keep it; these columns cannot be cleared
        if value is None:
            raise ValueError("must not be null")
        return value


class DiscountUpdate(BaseModel):
    is_discount_active: bool
    discount: float = Field(0, ge=0, le=100)
    discount_expiry: Optional[datetime] = None

    @field_validator("discount_expiry")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # naive input is taken as UTC; SQLite drops offsets on storage
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def _menu_item_to_dict(item: MenuItem) -> dict:
    discount_on = is_discount_active(item)
    return {
        "id": item.id,
        "restaurant_id": item.restaurant_id,
        "name": item.name,
        "price": item.price,
        "effective_price": effective_price(item),
        "description": item.description,
        "image_url": item.image_url,
        "is_available": item.is_available,
        "is_discount_active": item.is_discount_active,
        "discount": item.discount,
        "discount_expiry": item.discount_expiry.isoformat() if item.discount_expiry else None,
        "discount_applied": discount_on,
    }


def _get_menu_item(db: Session, restaurant_id: int, menu_id: int) -> MenuItem:
    item = db.query(MenuItem).filter(MenuItem.id == menu_id, MenuItem.restaurant_id == restaurant_id).first()
    if not item:
        raise HTTPException(status_code=404, detail="Menu item not found")
    return item


def _commit(db: Session, detail: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=500, detail=detail) from exc


@router.get("")
def list_menu(access: RestaurantAccess = Depends(require_staff), db: Session = Depends(get_db)):
    items = (
        db.query(MenuItem)
        .filter(MenuItem.restaurant_id == access.restaurant.id)
        .order_by(MenuItem.name.asc(), MenuItem.id.asc())
        .all()
    )
    return [_menu_item_to_dict(item) for item in items]


@router.post("", status_code=201)
def create_menu_item(
    payload: MenuItemCreate,
    access: RestaurantAccess = Depends(require_owner),
    db: Session = Depends(get_db),
):
    item = MenuItem(
        restaurant_id=access.restaurant.id,
        name=payload.name.strip(),
        price=payload.price,
        description=payload.description,
        image_url=payload.image_url,
        is_available=payload.is_available,
        is_discount_active=False,
        discount=0,
        discount_expiry=None,
    )
    db.add(item)
    _commit(db, "Could not create menu item")
    db.refresh(item)
    return _menu_item_to_dict(item)


@router.patch("/{menu_id}")
def update_menu_item(
    menu_id: int,
    payload: MenuItemUpdate,
    access: RestaurantAccess = Depends(require_owner),
    db: Session = Depends(get_db),
):
    item = _get_menu_item(db, access.restaurant.id, menu_id)
    for field_name, value in payload.model_dump(exclude_unset=True).items():
        if field_name == "name" and value is not None:
            value = value.strip()
        setattr(item, field_name, value)
    _commit(db, "Could not update menu item")
    db.refresh(item)
    return _menu_item_to_dict(item)


@router.patch("/{menu_id}/discount")
def update_discount(
    menu_id: int,
    payload: DiscountUpdate,
    access: RestaurantAccess = Depends(require_owner),
    db: Session = Depends(get_db),
):
    item = _get_menu_item(db, access.restaurant.id, menu_id)
    item.is_discount_active = payload.is_discount_active
    item.discount = payload.discount
    item.discount_expiry = payload.discount_expiry
    _commit(db, "Could not update discount")
    db.refresh(item)
    return _menu_item_to_dict(item)


@router.delete("/{menu_id}")
def delete_menu_item(
    menu_id: int,
    access: RestaurantAccess = Depends(require_owner),
    db: Session = Depends(get_db),
):
    item = _get_menu_item(db, access.restaurant.id, menu_id)
    if db.query(OrderItem.id).filter(OrderItem.menu_id == item.id).first() is not None:
        # Ordered dishes stay for history; hide them instead.
        item.is_available = False
        _commit(db, "Could not delete menu item")
        return {"ok": True, "deleted": False, "is_available": False}
    db.delete(item)
    _commit(db, "Could not delete menu item")
    return {"ok": True, "deleted": True}


@public_router.get("/menu")
def public_menu(slug: str, db: Session = Depends(get_db)):
    restaurant = get_restaurant_or_404(db, slug)
    items = (
        db.query(MenuItem)
        .filter(MenuItem.restaurant_id == restaurant.id, MenuItem.is_available.is_(True))
        .order_by(MenuItem.name.asc(), MenuItem.id.asc())
        .all()
    )
    return {
        "restaurant": {"slug": restaurant.slug, "name": restaurant.name},
        "items": [_menu_item_to_dict(item) for item in items],
    }
