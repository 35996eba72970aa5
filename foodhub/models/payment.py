from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship

from foodhub.core.database import Base


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), index=True, nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, index=True, nullable=False)

    amount = Column(Integer, nullable=False)  # subtotal
    discount = Column(Integer, nullable=False, default=0)
    tax = Column(Integer, nullable=False, default=0)
    total_amount = Column(Integer, nullable=False)
    method = Column(String(20), nullable=False)  # cash / ewallet / QR
    paid_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="payment")
