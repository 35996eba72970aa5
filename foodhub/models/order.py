from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, func, text
from sqlalchemy.orm import relationship

from foodhub.core.database import Base

ORDER_STATUS_UNPAID = "unpaid"
ORDER_STATUS_PAID = "paid"


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_restaurant_status", "restaurant_id", "status"),
        # At most one open order per table.
        Index(
            "uq_orders_open_table",
            "table_id",
            unique=True,
            sqlite_where=text("status = 'unpaid'"),
            postgresql_where=text("status = 'unpaid'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), index=True, nullable=False)
    table_id = Column(Integer, ForeignKey("tables.id"), index=True, nullable=False)

    customer_name = Column(String(120), nullable=True)
    guest_count = Column(Integer, nullable=True)

    status = Column(String(20), default=ORDER_STATUS_UNPAID, nullable=False)  # unpaid / paid
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    table = relationship("DiningTable")
    order_items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    payment = relationship("Payment", back_populates="order", uselist=False)
