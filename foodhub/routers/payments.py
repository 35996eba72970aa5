from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from foodhub.core.database import get_db
from foodhub.core.errors import FoodHubError, to_http_exception
from foodhub.deps import RestaurantAccess, require_staff
from foodhub.models.payment import Payment
from foodhub.services.finance import list_payments, settle_payment

router = APIRouter(prefix="/api/restaurants/{slug}", tags=["payments"])


class PaymentCreate(BaseModel):
    method: str
    # sign and range are checked by the settlement service
    discount: int = 0
    tax: int = 0


class PaymentRead(BaseModel):
    id: int
    restaurant_id: int
    order_id: int
    amount: int
    discount: int
    tax: int
    total_amount: int
    method: str
    paid_by: int
    created_at: Optional[datetime]


def _payment_to_dict(payment: Payment) -> dict:
    return {
        "id": payment.id,
        "restaurant_id": payment.restaurant_id,
        "order_id": payment.order_id,
        "amount": payment.amount,
        "discount": payment.discount,
        "tax": payment.tax,
        "total_amount": payment.total_amount,
        "method": payment.method,
        "paid_by": payment.paid_by,
        "created_at": payment.created_at,
    }


@router.post("/orders/{order_id}/payment", response_model=PaymentRead, status_code=201)
def create_payment(
    order_id: int,
    payload: PaymentCreate,
    access: RestaurantAccess = Depends(require_staff),
    db: Session = Depends(get_db),
):
    try:
        payment = settle_payment(
            db,
            order_id=order_id,
            discount=payload.discount,
            tax=payload.tax,
            method=payload.method,
            paid_by_user_id=access.user.id,
            restaurant_id=access.restaurant.id,
        )
    except FoodHubError as exc:
        raise to_http_exception(exc) from exc
    return _payment_to_dict(payment)


@router.get("/payments", response_model=List[PaymentRead])
def list_restaurant_payments(access: RestaurantAccess = Depends(require_staff), db: Session = Depends(get_db)):
    return [_payment_to_dict(payment) for payment in list_payments(db, access.restaurant.id)]
