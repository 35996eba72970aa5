from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, func

from foodhub.core.database import Base


class MenuItem(Base):
    __tablename__ = "menus"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    price = Column(Integer, nullable=False)  # Rupiah, no minor unit
    description = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)

    is_discount_active = Column(Boolean, default=False, nullable=False)
    discount = Column(Float, default=0, nullable=False)  # percent 0-100
    discount_expiry = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
