"""Open-order lifecycle: find-or-create the open order of a table and
append line items to it.

An order is *open* while its status is ``unpaid``. Each table has at most
one open order; the ``uq_orders_open_table`` partial index backs that up
when two devices race to open the same table.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from foodhub.core.errors import (
    InvalidMenuItemError,
    InvalidQuantityError,
    InvalidTableError,
    OrderAlreadyClosedError,
    OrderNotFoundError,
    PersistenceError,
)
from foodhub.models.menu_item import MenuItem
from foodhub.models.order import ORDER_STATUS_UNPAID, Order
from foodhub.models.order_item import OrderItem
from foodhub.models.table import DiningTable
from foodhub.services.order_events import emit_order_item_added, emit_order_opened
from foodhub.services.pricing import effective_price

logger = logging.getLogger(__name__)


@dataclass
class BillLine:
    order_item_id: int
    menu_id: int
    name: str
    quantity: int
    unit_price: int
    line_total: int


@dataclass
class Bill:
    order_id: int
    lines: list[BillLine] = field(default_factory=list)

    @property
    def subtotal(self) -> int:
        return sum(line.line_total for line in self.lines)


def _clean_name(value: str | None) -> str | None:
    cleaned = (value or "").strip()
    return cleaned or None


def _get_table(db: Session, table_id: int, restaurant_id: int) -> DiningTable:
    table = db.query(DiningTable).filter(DiningTable.id == table_id).first()
    if table is None or int(table.restaurant_id) != int(restaurant_id):
        logger.warning(
            "table lookup rejected table_id=%s restaurant_id=%s found_restaurant_id=%s",
            table_id,
            restaurant_id,
            getattr(table, "restaurant_id", None),
        )
        raise InvalidTableError(f"Table {table_id} does not belong to this restaurant")
    return table


def find_open_order(db: Session, table_id: int) -> Order | None:
    return (
        db.query(Order)
        .filter(Order.table_id == table_id, Order.status == ORDER_STATUS_UNPAID)
        .first()
    )


def get_order(db: Session, order_id: int, restaurant_id: int | None = None, *, for_update: bool = False) -> Order:
    query = db.query(Order).filter(Order.id == order_id)
    if restaurant_id is not None:
        query = query.filter(Order.restaurant_id == restaurant_id)
    if for_update:
        query = query.with_for_update()
    order = query.first()
    if order is None:
        raise OrderNotFoundError(f"Order {order_id} not found")
    return order


def resolve_open_order(
    db: Session,
    table_id: int,
    restaurant_id: int,
    customer_name: str | None = None,
    guest_count: int | None = None,
) -> Order:
    """Returns the open order of the table, creating it when there is none.

    An existing order is returned untouched: a different ``customer_name``
    does not overwrite the stored one.
    """
    try:
        table = _get_table(db, table_id, restaurant_id)
        existing = find_open_order(db, table.id)
        if existing is not None:
            return existing

        order = Order(
            restaurant_id=table.restaurant_id,
            table_id=table.id,
            customer_name=_clean_name(customer_name),
            guest_count=guest_count,
            status=ORDER_STATUS_UNPAID,
        )
        db.add(order)
        db.commit()
    except IntegrityError:
        # Another device opened this table between our read and insert.
        db.rollback()
        winner = _reload_open_order(db, table_id)
        logger.info("open order race resolved table_id=%s order_id=%s", table_id, winner.id)
        return winner
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("resolve open order failed table_id=%s", table_id)
        raise PersistenceError("Could not open an order for this table") from exc

    db.refresh(order)
    logger.info("order opened order_id=%s table_id=%s restaurant_id=%s", order.id, table_id, restaurant_id)
    emit_order_opened(order)
    return order


def _reload_open_order(db: Session, table_id: int) -> Order:
    try:
        winner = find_open_order(db, table_id)
    except SQLAlchemyError as exc:
        raise PersistenceError("Could not open an order for this table") from exc
    if winner is None:
        raise PersistenceError("Could not open an order for this table")
    return winner


def _get_available_menu_item(db: Session, menu_id: int, restaurant_id: int) -> MenuItem:
    menu_item = (
        db.query(MenuItem)
        .filter(MenuItem.id == menu_id, MenuItem.restaurant_id == restaurant_id)
        .first()
    )
    if menu_item is None or not menu_item.is_available:
        raise InvalidMenuItemError(f"Menu item {menu_id} is not available")
    return menu_item


def add_order_item(
    db: Session,
    order_id: int,
    menu_id: int,
    quantity: int,
    restaurant_id: int | None = None,
) -> OrderItem:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantityError(f"Quantity must be at least 1 (got {quantity!r})")

    try:
        order = get_order(db, order_id, restaurant_id, for_update=True)
        if order.status != ORDER_STATUS_UNPAID:
            raise OrderAlreadyClosedError(f"Order {order.id} is already {order.status}")

        menu_item = _get_available_menu_item(db, menu_id, order.restaurant_id)

        order_item = OrderItem(
            order_id=order.id,
            menu_id=menu_item.id,
            name=menu_item.name,
            unit_price=effective_price(menu_item),
            quantity=quantity,
        )
        db.add(order_item)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("add order item failed order_id=%s menu_id=%s", order_id, menu_id)
        raise PersistenceError("Could not add the item to the order") from exc

    db.refresh(order_item)
    emit_order_item_added(order, order_item)
    return order_item


def add_item_to_table(
    db: Session,
    table_id: int,
    restaurant_id: int,
    menu_id: int,
    quantity: int,
    customer_name: str | None = None,
    guest_count: int | None = None,
) -> tuple[Order, OrderItem]:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantityError(f"Quantity must be at least 1 (got {quantity!r})")
    try:
        # checked up front so a bad dish never leaves an empty order on the table
        _get_available_menu_item(db, menu_id, restaurant_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError("Could not add the item to the order") from exc
    order = resolve_open_order(db, table_id, restaurant_id, customer_name, guest_count)
    order_item = add_order_item(db, order.id, menu_id, quantity, restaurant_id=restaurant_id)
    return order, order_item


def compute_bill(order: Order) -> Bill:
    bill = Bill(order_id=order.id)
    for item in order.order_items:
        bill.lines.append(
            BillLine(
                order_item_id=item.id,
                menu_id=item.menu_id,
                name=item.name,
                quantity=int(item.quantity),
                unit_price=int(item.unit_price),
                line_total=item.line_total,
            )
        )
    return bill


def list_orders(db: Session, restaurant_id: int, status: str | None = None) -> list[Order]:
    query = db.query(Order).filter(Order.restaurant_id == restaurant_id)
    if status:
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()
