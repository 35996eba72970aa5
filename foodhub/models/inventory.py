from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship

from foodhub.core.database import Base


class Inventory(Base):
    __tablename__ = "inventory"
    __table_args__ = (UniqueConstraint("restaurant_id", "name", name="uq_inventory_restaurant_name"),)

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), index=True, nullable=False)
    name = Column(String(120), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    unit = Column(String(20), nullable=False, default="pcs")
    last_updated = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    logs = relationship(
        "InventoryLog",
        back_populates="inventory",
        cascade="all, delete-orphan",
        order_by="InventoryLog.id",
    )


class InventoryLog(Base):
    """One stock movement; ``cost`` is what the purchase cost in Rupiah."""

    __tablename__ = "inventory_logs"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), index=True, nullable=False)
    inventory_id = Column(Integer, ForeignKey("inventory.id"), index=True, nullable=False)
    change = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=False)
    cost = Column(Integer, nullable=False, default=0)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    inventory = relationship("Inventory", back_populates="logs")
