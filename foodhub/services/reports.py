from __future__ import annotations

from datetime import timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from foodhub.models.employee import Employee
from foodhub.models.order import ORDER_STATUS_PAID, ORDER_STATUS_UNPAID, Order
from foodhub.models.order_item import OrderItem
from foodhub.models.payment import Payment
from foodhub.services.restaurants import EMPLOYEE_STATUS_PENDING


def monthly_revenue(db: Session, restaurant_id: int) -> list[dict]:
    """Paid totals per calendar month (UTC), oldest month first."""
    # grouped in Python: strftime and to_char do not port between SQLite and PostgreSQL
    totals: dict[str, int] = {}
    rows = (
        db.query(Payment.created_at, Payment.total_amount)
        .filter(Payment.restaurant_id == restaurant_id)
        .all()
    )
    for created_at, total_amount in rows:
        if created_at is None:
            continue
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        month = created_at.astimezone(timezone.utc).strftime("%Y-%m")
        totals[month] = totals.get(month, 0) + int(total_amount or 0)
    return [{"month": month, "total": totals[month]} for month in sorted(totals)]


def sales_summary(db: Session, restaurant_id: int, top_limit: int = 5) -> dict:
    revenue, payment_count = (
        db.query(func.coalesce(func.sum(Payment.total_amount), 0), func.count(Payment.id))
        .filter(Payment.restaurant_id == restaurant_id)
        .one()
    )

    by_method_rows = (
        db.query(Payment.method, func.count(Payment.id), func.coalesce(func.sum(Payment.total_amount), 0))
        .filter(Payment.restaurant_id == restaurant_id)
        .group_by(Payment.method)
        .all()
    )

    top_rows = (
        db.query(OrderItem.menu_id, func.max(OrderItem.name), func.sum(OrderItem.quantity).label("quantity"))
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.restaurant_id == restaurant_id, Order.status == ORDER_STATUS_PAID)
        .group_by(OrderItem.menu_id)
        .order_by(func.sum(OrderItem.quantity).desc(), OrderItem.menu_id)
        .limit(top_limit)
        .all()
    )

    open_orders = (
        db.query(func.count(Order.id))
        .filter(Order.restaurant_id == restaurant_id, Order.status == ORDER_STATUS_UNPAID)
        .scalar()
    )

    pending_employees = (
        db.query(func.count(Employee.id))
        .filter(Employee.restaurant_id == restaurant_id, Employee.status == EMPLOYEE_STATUS_PENDING)
        .scalar()
    )

    return {
        "revenue": int(revenue or 0),
        "payment_count": int(payment_count or 0),
        "open_orders": int(open_orders or 0),
        "pending_employees": int(pending_employees or 0),
        "by_method": [
            {"method": method, "count": int(count), "total_amount": int(total or 0)}
            for method, count, total in by_method_rows
        ],
        "top_menus": [
            {"menu_id": menu_id, "name": name, "quantity": int(quantity or 0)}
            for menu_id, name, quantity in top_rows
        ],
        "monthly_revenue": monthly_revenue(db, restaurant_id),
    }
