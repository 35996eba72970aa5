"""Restaurant stock: purchases are added to an item keyed by name and every
addition is written to ``inventory_logs`` in the same transaction."""
from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from foodhub.core.errors import InvalidQuantityError, PersistenceError, ValidationError
from foodhub.models.inventory import Inventory, InventoryLog
from foodhub.services.pricing import utcnow

logger = logging.getLogger(__name__)

DEFAULT_UNIT = "pcs"
DEFAULT_REASON = "Pengadaan Stok Baru"


def _clean(value: str | None) -> str:
    return " ".join((value or "").split())


def _find_item(db: Session, restaurant_id: int, name: str) -> Inventory | None:
    return (
        db.query(Inventory)
        .filter(Inventory.restaurant_id == restaurant_id, Inventory.name == name)
        .with_for_update()
        .first()
    )


def add_stock(
    db: Session,
    restaurant_id: int,
    name: str,
    quantity: int,
    created_by: int,
    unit: str | None = None,
    reason: str | None = None,
    cost: int = 0,
) -> tuple[Inventory, InventoryLog]:
    """Adds ``quantity`` to the named item, creating it on first purchase.

    The unit of an existing item is kept; ``unit`` only applies when the
    item is new.
    """
    name = _clean(name)
    if not name:
        raise ValidationError("Item name is required")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantityError(f"Quantity must be at least 1 (got {quantity!r})")
    if isinstance(cost, bool) or not isinstance(cost, int) or cost < 0:
        raise ValidationError("Cost must be a whole amount of zero or more")

    try:
        item, log = _record_purchase(db, restaurant_id, name, quantity, created_by, unit, reason, cost)
    except IntegrityError:
        # Another device created the same item first; add to theirs.
        db.rollback()
        try:
            item, log = _record_purchase(db, restaurant_id, name, quantity, created_by, unit, reason, cost)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("add stock failed restaurant_id=%s name=%s", restaurant_id, name)
            raise PersistenceError("Could not record the stock purchase") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("add stock failed restaurant_id=%s name=%s", restaurant_id, name)
        raise PersistenceError("Could not record the stock purchase") from exc

    db.refresh(item)
    db.refresh(log)
    logger.info(
        "stock added restaurant_id=%s inventory_id=%s change=%s quantity=%s cost=%s",
        restaurant_id,
        item.id,
        log.change,
        item.quantity,
        log.cost,
    )
    return item, log


def _record_purchase(db, restaurant_id, name, quantity, created_by, unit, reason, cost):
    item = _find_item(db, restaurant_id, name)
    if item is None:
        item = Inventory(
            restaurant_id=restaurant_id,
            name=name,
            quantity=quantity,
            unit=_clean(unit) or DEFAULT_UNIT,
            last_updated=utcnow(),
        )
        db.add(item)
        db.flush()
    else:
        item.quantity = int(item.quantity) + quantity
        item.last_updated = utcnow()

    log = InventoryLog(
        restaurant_id=restaurant_id,
        inventory_id=item.id,
        change=quantity,
        reason=_clean(reason) or DEFAULT_REASON,
        cost=cost,
        created_by=created_by,
    )
    db.add(log)
    db.commit()
    return item, log


def list_inventory(db: Session, restaurant_id: int) -> list[Inventory]:
    return (
        db.query(Inventory)
        .filter(Inventory.restaurant_id == restaurant_id)
        .order_by(Inventory.last_updated.desc(), Inventory.id.desc())
        .all()
    )


def list_inventory_logs(db: Session, restaurant_id: int, inventory_id: int | None = None) -> list[InventoryLog]:
    query = db.query(InventoryLog).filter(InventoryLog.restaurant_id == restaurant_id)
    if inventory_id is not None:
        query = query.filter(InventoryLog.inventory_id == inventory_id)
    return query.order_by(InventoryLog.created_at.desc(), InventoryLog.id.desc()).all()


def inventory_values(db: Session, restaurant_id: int) -> dict[int, int]:
    """Total purchase cost per inventory id."""
    rows = (
        db.query(InventoryLog.inventory_id, func.coalesce(func.sum(InventoryLog.cost), 0))
        .filter(InventoryLog.restaurant_id == restaurant_id)
        .group_by(InventoryLog.inventory_id)
        .all()
    )
    return {inventory_id: int(total or 0) for inventory_id, total in rows}
