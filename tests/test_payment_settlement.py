from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from foodhub.core.errors import (
    InvalidDiscountError,
    InvalidPaymentMethodError,
    OrderAlreadyPaidError,
    OrderNotFoundError,
    PersistenceError,
    UnauthenticatedError,
    ValidationError,
)
from foodhub.models.order import ORDER_STATUS_PAID, ORDER_STATUS_UNPAID, Order
from foodhub.models.payment import Payment
from foodhub.services import finance
from foodhub.services.event_bus import event_bus
from foodhub.services.finance import calculate_totals, normalize_payment_method, settle_payment
from foodhub.services.order_events import ORDER_PAID
from foodhub.services.orders import add_order_item, resolve_open_order
from tests.factories import make_session, seed_restaurant
from tests.fixtures_data import SETTLEMENT_HAPPY_PATH


def _order_with_items(db, seed, items=None, table_number=5):
    order = resolve_open_order(db, seed.tables[table_number].id, seed.restaurant.id)
    for key, quantity in items or SETTLEMENT_HAPPY_PATH["items"]:
        add_order_item(db, order.id, seed.menu[key].id, quantity)
    return order


def _refreshed_status(db, order_id):
    db.expire_all()
    return db.query(Order).filter(Order.id == order_id).one().status


def test_calculate_totals_applies_discount_then_tax():
    totals = calculate_totals(45000, discount=5000, tax=2000)

    assert totals.amount == 45000
    assert totals.total_amount == 42000


def test_calculate_totals_allows_discount_up_to_payable_amount():
    assert calculate_totals(10000, discount=11000, tax=1000).total_amount == 0


@pytest.mark.parametrize(
    ("discount", "tax", "error"),
    [
        (12000, 1000, InvalidDiscountError),
        (-1, 0, InvalidDiscountError),
        (0, -500, ValidationError),
        (10.5, 0, ValidationError),
    ],
)
def test_calculate_totals_rejects_invalid_adjustments(discount, tax, error):
    with pytest.raises(error):
        calculate_totals(10000, discount=discount, tax=tax)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("cash", "cash"), ("Tunai", "cash"), ("GoPay", "ewallet"), ("e-wallet", "ewallet"), ("QRIS", "QR"), ("qr", "QR")],
)
def test_payment_method_aliases(raw, expected):
    assert normalize_payment_method(raw) == expected


@pytest.mark.parametrize("raw", ["bitcoin", "", None])
def test_unknown_payment_method_is_rejected(raw):
    with pytest.raises(InvalidPaymentMethodError):
        normalize_payment_method(raw)


def test_settle_records_payment_and_closes_order():
    db = make_session()
    seed = seed_restaurant(db)
    order = _order_with_items(db, seed)

    payment = settle_payment(
        db,
        order.id,
        discount=SETTLEMENT_HAPPY_PATH["discount"],
        tax=SETTLEMENT_HAPPY_PATH["tax"],
        method="cash",
        paid_by_user_id=seed.owner.id,
    )

    assert payment.amount == SETTLEMENT_HAPPY_PATH["expected_amount"]
    assert payment.total_amount == SETTLEMENT_HAPPY_PATH["expected_total_amount"]
    assert payment.discount == 5000
    assert payment.tax == 2000
    assert payment.method == "cash"
    assert payment.paid_by == seed.owner.id
    assert payment.restaurant_id == seed.restaurant.id
    assert _refreshed_status(db, order.id) == ORDER_STATUS_PAID
    assert db.query(Order).filter(Order.id == order.id).one().paid_at is not None


def test_second_settlement_is_rejected_and_leaves_one_payment():
    db = make_session()
    seed = seed_restaurant(db)
    order = _order_with_items(db, seed)
    settle_payment(db, order.id, 0, 0, "cash", seed.owner.id)

    with pytest.raises(OrderAlreadyPaidError):
        settle_payment(db, order.id, 0, 0, "QR", seed.owner.id)

    assert db.query(Payment).filter(Payment.order_id == order.id).count() == 1


def test_guarded_update_rejects_a_settlement_that_lost_the_race(monkeypatch):
    db = make_session()
    seed = seed_restaurant(db)
    order = _order_with_items(db, seed)
    items = list(order.order_items)
    settle_payment(db, order.id, 0, 0, "cash", seed.owner.id)

    stale = SimpleNamespace(
        id=order.id,
        restaurant_id=seed.restaurant.id,
        status=ORDER_STATUS_UNPAID,
        order_items=items,
    )
    monkeypatch.setattr(finance, "get_order", lambda *_args, **_kwargs: stale)

    with pytest.raises(OrderAlreadyPaidError):
        settle_payment(db, order.id, 0, 0, "cash", seed.owner.id)

    assert db.query(Payment).count() == 1


def test_discount_above_payable_amount_keeps_order_open():
    db = make_session()
    seed = seed_restaurant(db)
    order = _order_with_items(db, seed, items=[("es_teh", 1)])

    with pytest.raises(InvalidDiscountError):
        settle_payment(db, order.id, discount=6000, tax=500, method="cash", paid_by_user_id=seed.owner.id)

    assert _refreshed_status(db, order.id) == ORDER_STATUS_UNPAID
    assert db.query(Payment).count() == 0


def test_discount_equal_to_payable_amount_settles_for_zero():
    db = make_session()
    seed = seed_restaurant(db)
    order = _order_with_items(db, seed, items=[("es_teh", 1)])

    payment = settle_payment(db, order.id, discount=5500, tax=500, method="ewallet", paid_by_user_id=seed.owner.id)

    assert payment.total_amount == 0


def test_settlement_requires_a_known_user():
    db = make_session()
    seed = seed_restaurant(db)
    order = _order_with_items(db, seed)

    with pytest.raises(UnauthenticatedError):
        settle_payment(db, order.id, 0, 0, "cash", None)
    with pytest.raises(UnauthenticatedError):
        settle_payment(db, order.id, 0, 0, "cash", 9999)

    assert _refreshed_status(db, order.id) == ORDER_STATUS_UNPAID


def test_settlement_rejects_unknown_method_before_touching_the_order():
    db = make_session()
    seed = seed_restaurant(db)
    order = _order_with_items(db, seed)

    with pytest.raises(InvalidPaymentMethodError):
        settle_payment(db, order.id, 0, 0, "bitcoin", seed.owner.id)

    assert _refreshed_status(db, order.id) == ORDER_STATUS_UNPAID


def test_settlement_of_an_empty_order_is_rejected():
    db = make_session()
    seed = seed_restaurant(db)
    order = resolve_open_order(db, seed.tables[1].id, seed.restaurant.id)

    with pytest.raises(ValidationError):
        settle_payment(db, order.id, 0, 0, "cash", seed.owner.id)


def test_settlement_of_unknown_order():
    db = make_session()
    seed = seed_restaurant(db)

    with pytest.raises(OrderNotFoundError):
        settle_payment(db, 777, 0, 0, "cash", seed.owner.id)


def test_failed_commit_rolls_back_status_and_payment(monkeypatch):
    db = make_session()
    seed = seed_restaurant(db)
    order = _order_with_items(db, seed)

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", failing_commit)

    with pytest.raises(PersistenceError):
        settle_payment(db, order.id, 0, 0, "cash", seed.owner.id)

    monkeypatch.undo()
    assert _refreshed_status(db, order.id) == ORDER_STATUS_UNPAID
    assert db.query(Payment).count() == 0


def test_settlement_emits_order_paid():
    db = make_session()
    seed = seed_restaurant(db)
    order = _order_with_items(db, seed)
    received = []
    handler = received.append
    event_bus.subscribe(ORDER_PAID, handler)
    try:
        payment = settle_payment(db, order.id, 5000, 2000, "QRIS", seed.owner.id)
    finally:
        event_bus.unsubscribe(ORDER_PAID, handler)

    assert received == [
        {
            "order_id": order.id,
            "restaurant_id": seed.restaurant.id,
            "table_id": seed.tables[5].id,
            "status": ORDER_STATUS_PAID,
            "customer_name": None,
            "payment_id": payment.id,
            "method": "QR",
            "total_amount": 42000,
            "paid_by": seed.owner.id,
        }
    ]


def test_settlement_is_scoped_to_the_restaurant():
    db = make_session()
    seed = seed_restaurant(db)
    other = seed_restaurant(db, slug="bakso-pak-min")
    order = _order_with_items(db, seed)

    with pytest.raises(OrderNotFoundError):
        settle_payment(db, order.id, 0, 0, "cash", other.owner.id, restaurant_id=other.restaurant.id)

    assert db.query(Payment).count() == 0
    assert _refreshed_status(db, order.id) == ORDER_STATUS_UNPAID
