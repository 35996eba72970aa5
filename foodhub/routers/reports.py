from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from foodhub.core.database import get_db
from foodhub.deps import RestaurantAccess, require_owner
from foodhub.services.reports import sales_summary

router = APIRouter(prefix="/api/restaurants/{slug}/reports", tags=["reports"])


@router.get("/summary")
def summary(
    top: int = Query(5, ge=1, le=50),
    access: RestaurantAccess = Depends(require_owner),
    db: Session = Depends(get_db),
):
    data = sales_summary(db, access.restaurant.id, top_limit=top)
    data["restaurant"] = access.restaurant.slug
    return data
