from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from foodhub.core.database import Base


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True)
    # Public namespace: /FoodHub.com/<slug>. Never changes after registration.
    slug = Column(String(80), unique=True, index=True, nullable=False)
    name = Column(String(120), nullable=False)
    address = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    owner = relationship("User")
    tables = relationship("DiningTable", back_populates="restaurant", cascade="all, delete-orphan")
    employees = relationship("Employee", back_populates="restaurant", cascade="all, delete-orphan")
