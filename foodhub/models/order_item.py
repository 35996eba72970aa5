from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship

from foodhub.core.database import Base


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    menu_id = Column(Integer, ForeignKey("menus.id"), nullable=False)

    # snapshot at add time
    name = Column(String, nullable=False)
    unit_price = Column(Integer, nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="order_items")

    @property
    def line_total(self) -> int:
        return int(self.unit_price or 0) * int(self.quantity or 0)
