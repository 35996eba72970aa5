from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from foodhub.core.database import get_db
from foodhub.deps import RestaurantAccess, require_staff
from foodhub.services.restaurants import check_slug

router = APIRouter(prefix="/api/restaurants", tags=["restaurants"])


def _restaurant_to_dict(restaurant) -> dict:
    return {
        "id": restaurant.id,
        "slug": restaurant.slug,
        "name": restaurant.name,
        "address": restaurant.address,
        "phone": restaurant.phone,
        "owner_id": restaurant.owner_id,
        "created_at": restaurant.created_at.isoformat() if restaurant.created_at else None,
    }


@router.get("/slug-availability")
def slug_availability(slug: str = Query(..., min_length=1, max_length=120), db: Session = Depends(get_db)):
    normalized, available = check_slug(db, slug)
    return {"slug": normalized, "available": available}


@router.get("/{slug}")
def get_restaurant(access: RestaurantAccess = Depends(require_staff)):
    data = _restaurant_to_dict(access.restaurant)
    data["role"] = access.role
    return data
