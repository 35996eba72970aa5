from __future__ import annotations

import logging

from foodhub.services.event_bus import event_bus
from foodhub.services.order_events import ORDER_ITEM_ADDED, ORDER_OPENED, ORDER_PAID

logger = logging.getLogger(__name__)


def handle_order_opened(payload: dict) -> None:
    logger.info(
        "order opened order_id=%s table_id=%s",
        payload.get("order_id"),
        payload.get("table_id"),
        extra={"event": ORDER_OPENED},
    )


def handle_order_item_added(payload: dict) -> None:
    logger.info(
        "order item added order_id=%s menu_id=%s quantity=%s",
        payload.get("order_id"),
        payload.get("menu_id"),
        payload.get("quantity"),
        extra={"event": ORDER_ITEM_ADDED},
    )


def handle_order_paid(payload: dict) -> None:
    logger.info(
        "order paid order_id=%s payment_id=%s total_amount=%s method=%s",
        payload.get("order_id"),
        payload.get("payment_id"),
        payload.get("total_amount"),
        payload.get("method"),
        extra={"event": ORDER_PAID},
    )


event_bus.subscribe(ORDER_OPENED, handle_order_opened)
event_bus.subscribe(ORDER_ITEM_ADDED, handle_order_item_added)
event_bus.subscribe(ORDER_PAID, handle_order_paid)
