from __future__ import annotations

from foodhub.models.order import Order
from foodhub.models.order_item import OrderItem
from foodhub.models.payment import Payment
from foodhub.services.event_bus import event_bus

ORDER_OPENED = "order.opened"
ORDER_ITEM_ADDED = "order.item_added"
ORDER_PAID = "order.paid"


def build_order_payload(order: Order) -> dict:
    return {
        "order_id": order.id,
        "restaurant_id": order.restaurant_id,
        "table_id": order.table_id,
        "status": order.status,
        "customer_name": order.customer_name,
    }


def emit_order_opened(order: Order) -> None:
    event_bus.emit(ORDER_OPENED, build_order_payload(order))


def emit_order_item_added(order: Order, item: OrderItem) -> None:
    payload = build_order_payload(order)
    payload.update(
        {
            "order_item_id": item.id,
            "menu_id": item.menu_id,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
        }
    )
    event_bus.emit(ORDER_ITEM_ADDED, payload)


def emit_order_paid(order: Order, payment: Payment) -> None:
    payload = build_order_payload(order)
    payload.update(
        {
            "payment_id": payment.id,
            "method": payment.method,
            "total_amount": payment.total_amount,
            "paid_by": payment.paid_by,
        }
    )
    event_bus.emit(ORDER_PAID, payload)
