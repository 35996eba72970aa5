from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship

from foodhub.core.database import Base


class Employee(Base):
    __tablename__ = "employees"
    __table_args__ = (UniqueConstraint("user_id", "restaurant_id", name="uq_employees_user_restaurant"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), index=True, nullable=False)
    role = Column(String(50), nullable=False, default="cashier")
    status = Column(String(20), nullable=False, default="pending")  # pending / approved
    salary = Column(Integer, nullable=True)
    joined_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User")
    restaurant = relationship("Restaurant", back_populates="employees")
