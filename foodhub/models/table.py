from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, func
from sqlalchemy.orm import relationship

from foodhub.core.database import Base


class DiningTable(Base):
    __tablename__ = "tables"
    __table_args__ = (Index("ix_tables_restaurant_number", "restaurant_id", "table_number"),)

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), index=True, nullable=False)
    table_number = Column(Integer, nullable=False)
    capacity = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    restaurant = relationship("Restaurant", back_populates="tables")
