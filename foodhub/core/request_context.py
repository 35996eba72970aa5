"""Per-request values read by the JSON log formatter.

The middleware sets ``request_id``; auth dependencies add the restaurant
slug and the user id once they are known.
"""
from __future__ import annotations

from contextvars import ContextVar
from typing import Optional

_request_id: ContextVar[Optional[str]] = ContextVar("foodhub_request_id", default=None)
_restaurant: ContextVar[Optional[str]] = ContextVar("foodhub_restaurant", default=None)
_user_id: ContextVar[Optional[str]] = ContextVar("foodhub_user_id", default=None)

_FIELDS = {"request_id": _request_id, "restaurant": _restaurant, "user_id": _user_id}


def set_request_context(**values: Optional[str]) -> None:
    """Sets the given fields; ``None`` leaves a field untouched."""
    for name, value in values.items():
        if value is not None:
            _FIELDS[name].set(value)


def get_request_id() -> Optional[str]:
    return _request_id.get()


def get_restaurant() -> Optional[str]:
    return _restaurant.get()


def get_user_id() -> Optional[str]:
    return _user_id.get()


def clear_request_context() -> None:
    for var in _FIELDS.values():
        var.set(None)
