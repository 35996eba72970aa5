import logging
import unicodedata
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from foodhub.core.errors import (
    FoodHubError,
    InvalidDiscountError,
    InvalidPaymentMethodError,
    OrderAlreadyPaidError,
    PersistenceError,
    UnauthenticatedError,
    ValidationError,
)
from foodhub.models.order import ORDER_STATUS_PAID, ORDER_STATUS_UNPAID, Order
from foodhub.models.payment import Payment
from foodhub.models.user import User
from foodhub.services.order_events import emit_order_paid
from foodhub.services.orders import compute_bill, get_order
from foodhub.services.pricing import utcnow

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ("cash", "ewallet", "QR")
PAYMENT_METHOD_ALIASES = {
    "cash": "cash",
    "tunai": "cash",
    "ewallet": "ewallet",
    "e-wallet": "ewallet",
    "e wallet": "ewallet",
    "gopay": "ewallet",
    "ovo": "ewallet",
    "dana": "ewallet",
    "shopeepay": "ewallet",
    "qr": "QR",
    "qris": "QR",
}


@dataclass(frozen=True)
class PaymentTotals:
    amount: int
    discount: int
    tax: int
    total_amount: int


def _strip_accents(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value)
    return "".join([char for char in normalized if not unicodedata.combining(char)])


def normalize_payment_method(method: str | None) -> str:
    lowered = _strip_accents(str(method or "").strip().lower())
    normalized = PAYMENT_METHOD_ALIASES.get(lowered)
    if normalized is None:
        raise InvalidPaymentMethodError(
            f"Unsupported payment method {method!r}; expected one of {', '.join(PAYMENT_METHODS)}"
        )
    return normalized


def _as_money(value, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a whole amount")
    try:
        amount = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field_name} must be a whole amount") from exc
    if amount != value:
        raise ValidationError(f"{field_name} must be a whole amount")
    return amount


def calculate_totals(amount: int, discount: int = 0, tax: int = 0) -> PaymentTotals:
    """total = amount - discount + tax, never negative."""
    discount = _as_money(discount, "discount")
    tax = _as_money(tax, "tax")
    if discount < 0:
        raise InvalidDiscountError("Discount cannot be negative")
    if tax < 0:
        raise ValidationError("Tax cannot be negative")
    if discount > amount + tax:
        raise InvalidDiscountError(
            f"Discount {discount} exceeds the payable amount {amount + tax}"
        )
    return PaymentTotals(
        amount=amount,
        discount=discount,
        tax=tax,
        total_amount=amount - discount + tax,
    )


def _ensure_active_user(db: Session, user_id: int | None) -> User:
    if user_id is None:
        raise UnauthenticatedError("A signed-in user is required to record a payment")
    user = db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
    if user is None:
        raise UnauthenticatedError("A signed-in user is required to record a payment")
    return user


def settle_payment(
    db: Session,
    order_id: int,
    discount: int,
    tax: int,
    method: str,
    paid_by_user_id: int | None,
    restaurant_id: int | None = None,
) -> Payment:
    """Records the payment of an open order and closes it.

    The status flip and the payment insert share one transaction; the flip
    is a guarded ``UPDATE ... WHERE status = 'unpaid'`` so a second
    settlement of the same order affects no row and is rejected.
    """
    if paid_by_user_id is None:
        raise UnauthenticatedError("A signed-in user is required to record a payment")
    normalized_method = normalize_payment_method(method)

    try:
        user = _ensure_active_user(db, paid_by_user_id)
        order = get_order(db, order_id, restaurant_id, for_update=True)
        if order.status != ORDER_STATUS_UNPAID:
            raise OrderAlreadyPaidError(f"Order {order.id} is already paid")

        bill = compute_bill(order)
        if not bill.lines:
            raise ValidationError(f"Order {order.id} has no items to pay")
        totals = calculate_totals(bill.subtotal, discount, tax)

        updated = (
            db.query(Order)
            .filter(Order.id == order.id, Order.status == ORDER_STATUS_UNPAID)
            .update({Order.status: ORDER_STATUS_PAID, Order.paid_at: utcnow()}, synchronize_session=False)
        )
        if updated != 1:
            raise OrderAlreadyPaidError(f"Order {order.id} is already paid")

        payment = Payment(
            restaurant_id=order.restaurant_id,
            order_id=order.id,
            amount=totals.amount,
            discount=totals.discount,
            tax=totals.tax,
            total_amount=totals.total_amount,
            method=normalized_method,
            paid_by=user.id,
        )
        db.add(payment)
        db.commit()
    except FoodHubError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        if _payment_exists(db, order_id):
            raise OrderAlreadyPaidError(f"Order {order_id} is already paid") from exc
        logger.exception("settle payment failed order_id=%s", order_id)
        raise PersistenceError("Could not record the payment") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("settle payment failed order_id=%s", order_id)
        raise PersistenceError("Could not record the payment") from exc

    db.refresh(payment)
    db.refresh(order)
    logger.info(
        "order settled order_id=%s payment_id=%s amount=%s total_amount=%s method=%s",
        order.id,
        payment.id,
        payment.amount,
        payment.total_amount,
        payment.method,
    )
    emit_order_paid(order, payment)
    return payment


def _payment_exists(db: Session, order_id: int) -> bool:
    try:
        return db.query(Payment.id).filter(Payment.order_id == order_id).first() is not None
    except SQLAlchemyError:
        return False


def list_payments(db: Session, restaurant_id: int) -> list[Payment]:
    return (
        db.query(Payment)
        .filter(Payment.restaurant_id == restaurant_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )
