from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from foodhub.models.menu_item import MenuItem


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_discount_active(menu_item: MenuItem, now: datetime | None = None) -> bool:
    if not menu_item.is_discount_active:
        return False
    if not menu_item.discount or float(menu_item.discount) <= 0:
        return False
    expiry = menu_item.discount_expiry
    if expiry is None:
        return True
    return _as_aware(expiry) > _as_aware(now or utcnow())


def discounted_price(price: int, discount_percent: float) -> int:
    """price * (1 - discount/100), rounded half up to a whole currency unit."""
    percent = min(max(Decimal(str(discount_percent or 0)), Decimal(0)), Decimal(100))
    value = Decimal(int(price)) * (Decimal(1) - percent / Decimal(100))
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def effective_price(menu_item: MenuItem, now: datetime | None = None) -> int:
    if is_discount_active(menu_item, now=now):
        return discounted_price(menu_item.price, menu_item.discount)
    return int(menu_item.price)
