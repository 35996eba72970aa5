from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from foodhub.core.errors import (
    InvalidMenuItemError,
    InvalidQuantityError,
    OrderAlreadyClosedError,
    OrderNotFoundError,
    PersistenceError,
)
from foodhub.models.order import ORDER_STATUS_PAID, Order
from foodhub.models.order_item import OrderItem
from foodhub.services.orders import (
    add_item_to_table,
    add_order_item,
    compute_bill,
    get_order,
    resolve_open_order,
)
from tests.factories import make_session, seed_restaurant


def _open_order(db, seed, table_number=5):
    return resolve_open_order(db, seed.tables[table_number].id, seed.restaurant.id)


def test_add_item_records_line_with_snapshot_price():
    db = make_session()
    seed = seed_restaurant(db)
    order = _open_order(db, seed)

    item = add_order_item(db, order.id, seed.menu["nasi_goreng"].id, 2)

    assert item.order_id == order.id
    assert item.menu_id == seed.menu["nasi_goreng"].id
    assert item.name == "Nasi Goreng"
    assert item.quantity == 2
    assert item.unit_price == 20000
    assert item.line_total == 40000


def test_repeated_adds_accumulate_as_separate_lines():
    db = make_session()
    seed = seed_restaurant(db)
    order = _open_order(db, seed)
    dish = seed.menu["nasi_goreng"].id

    add_order_item(db, order.id, dish, 2)
    add_order_item(db, order.id, dish, 1)
    add_order_item(db, order.id, dish, 3)

    rows = db.query(OrderItem).filter(OrderItem.order_id == order.id).order_by(OrderItem.id).all()
    assert [row.quantity for row in rows] == [2, 1, 3]
    assert compute_bill(get_order(db, order.id)).subtotal == 120000


@pytest.mark.parametrize("quantity", [0, -1, True, 1.5])
def test_add_item_rejects_invalid_quantity(quantity):
    db = make_session()
    seed = seed_restaurant(db)
    order = _open_order(db, seed)

    with pytest.raises(InvalidQuantityError):
        add_order_item(db, order.id, seed.menu["es_teh"].id, quantity)

    assert db.query(OrderItem).count() == 0


def test_add_item_to_paid_order_is_rejected():
    db = make_session()
    seed = seed_restaurant(db)
    order = _open_order(db, seed)
    add_order_item(db, order.id, seed.menu["es_teh"].id, 1)
    order.status = ORDER_STATUS_PAID
    db.commit()

    with pytest.raises(OrderAlreadyClosedError):
        add_order_item(db, order.id, seed.menu["es_teh"].id, 1)

    assert db.query(OrderItem).filter(OrderItem.order_id == order.id).count() == 1


def test_add_item_to_unknown_order():
    db = make_session()
    seed = seed_restaurant(db)

    with pytest.raises(OrderNotFoundError):
        add_order_item(db, 4242, seed.menu["es_teh"].id, 1)


def test_add_item_rejects_menu_of_another_restaurant():
    db = make_session()
    own = seed_restaurant(db, slug="warung-bu-sri")
    other = seed_restaurant(db, slug="bakso-pak-min")
    order = _open_order(db, own)

    with pytest.raises(InvalidMenuItemError):
        add_order_item(db, order.id, other.menu["es_teh"].id, 1)

    assert db.query(OrderItem).count() == 0


def test_add_item_rejects_unavailable_menu_item():
    db = make_session()
    seed = seed_restaurant(db)
    order = _open_order(db, seed)
    seed.menu["sate_ayam"].is_available = False
    db.commit()

    with pytest.raises(InvalidMenuItemError):
        add_order_item(db, order.id, seed.menu["sate_ayam"].id, 1)


def test_order_scoped_to_restaurant_is_not_found_from_another_tenant():
    db = make_session()
    own = seed_restaurant(db, slug="warung-bu-sri")
    other = seed_restaurant(db, slug="bakso-pak-min")
    order = _open_order(db, own)

    with pytest.raises(OrderNotFoundError):
        add_order_item(db, order.id, own.menu["es_teh"].id, 1, restaurant_id=other.restaurant.id)


def test_snapshot_price_applies_active_discount_and_survives_price_changes():
    db = make_session()
    seed = seed_restaurant(db)
    dish = seed.menu["nasi_goreng"]
    dish.is_discount_active = True
    dish.discount = 10
    dish.discount_expiry = datetime.now(timezone.utc) + timedelta(days=1)
    db.commit()
    order = _open_order(db, seed)

    item = add_order_item(db, order.id, dish.id, 1)
    dish.price = 30000
    dish.is_discount_active = False
    db.commit()
    db.refresh(item)

    assert item.unit_price == 18000
    assert compute_bill(get_order(db, order.id)).subtotal == 18000


def test_expired_discount_falls_back_to_list_price():
    db = make_session()
    seed = seed_restaurant(db)
    dish = seed.menu["nasi_goreng"]
    dish.is_discount_active = True
    dish.discount = 50
    dish.discount_expiry = datetime.now(timezone.utc) - timedelta(minutes=1)
    db.commit()
    order = _open_order(db, seed)

    item = add_order_item(db, order.id, dish.id, 1)

    assert item.unit_price == 20000


def test_add_item_to_table_opens_order_and_reuses_it():
    db = make_session()
    seed = seed_restaurant(db)
    table_id = seed.tables[5].id

    order, first = add_item_to_table(db, table_id, seed.restaurant.id, seed.menu["nasi_goreng"].id, 2, "Alice")
    same_order, second = add_item_to_table(db, table_id, seed.restaurant.id, seed.menu["es_teh"].id, 1)

    assert same_order.id == order.id
    assert [first.order_id, second.order_id] == [order.id, order.id]
    assert compute_bill(get_order(db, order.id)).subtotal == 45000


def test_add_item_to_table_with_bad_quantity_does_not_open_an_order():
    db = make_session()
    seed = seed_restaurant(db)

    with pytest.raises(InvalidQuantityError):
        add_item_to_table(db, seed.tables[5].id, seed.restaurant.id, seed.menu["es_teh"].id, 0)

    assert db.query(Order).count() == 0


@pytest.mark.parametrize("dish", ["unknown", "unavailable", "foreign"])
def test_add_item_to_table_with_bad_dish_does_not_open_an_order(dish):
    db = make_session()
    seed = seed_restaurant(db)
    other = seed_restaurant(db, slug="bakso-pak-min")
    menu_id = {
        "unknown": 424242,
        "unavailable": seed.menu["sate_ayam"].id,
        "foreign": other.menu["es_teh"].id,
    }[dish]
    seed.menu["sate_ayam"].is_available = False
    db.commit()

    with pytest.raises(InvalidMenuItemError):
        add_item_to_table(db, seed.tables[5].id, seed.restaurant.id, menu_id, 1)

    assert db.query(Order).count() == 0


def test_failed_commit_while_adding_item_rolls_back(monkeypatch):
    db = make_session()
    seed = seed_restaurant(db)
    order = _open_order(db, seed)

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", failing_commit)

    with pytest.raises(PersistenceError):
        add_order_item(db, order.id, seed.menu["es_teh"].id, 1)

    monkeypatch.undo()
    assert db.query(OrderItem).count() == 0


class FailingQuery:
    def filter(self, *_args, **_kwargs):
        return self

    def with_for_update(self):
        return self

    def first(self):
        raise OperationalError("SELECT", {}, Exception("database is locked"))


class FailingDb:
    def __init__(self):
        self.rolled_back = False

    def query(self, *_args):
        return FailingQuery()

    def rollback(self):
        self.rolled_back = True


def test_add_item_wraps_datastore_failures():
    db = FailingDb()

    with pytest.raises(PersistenceError):
        add_order_item(db, order_id=1, menu_id=1, quantity=1)

    assert db.rolled_back is True
