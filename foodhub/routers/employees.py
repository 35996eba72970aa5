from datetime import datetime, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from foodhub.core.database import get_db
from foodhub.deps import RestaurantAccess, require_owner
from foodhub.models.employee import Employee
from foodhub.services.restaurants import EMPLOYEE_STATUS_APPROVED

router = APIRouter(prefix="/api/restaurants/{slug}/employees", tags=["employees"])


class EmployeeUpdate(BaseModel):
    role: Optional[str] = Field(default=None, min_length=1, max_length=50)
    salary: Optional[int] = Field(default=None, ge=0)


def _employee_to_dict(employee: Employee) -> dict:
    user = employee.user
    return {
        "id": employee.id,
        "user_id": employee.user_id,
        "full_name": user.full_name if user else None,
        "email": user.email if user else None,
        "restaurant_id": employee.restaurant_id,
        "role": employee.role,
        "status": employee.status,
        "salary": employee.salary,
        "joined_at": employee.joined_at.isoformat() if employee.joined_at else None,
    }


def _get_employee(db: Session, restaurant_id: int, employee_id: int) -> Employee:
    employee = (
        db.query(Employee)
        .filter(Employee.id == employee_id, Employee.restaurant_id == restaurant_id)
        .first()
    )
    if not employee:
        raise HTTPException(status_code=404, detail="Employee not found")
    return employee


def _commit(db: Session, detail: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=500, detail=detail) from exc


@router.get("")
def list_employees(
    status: Optional[Literal["pending", "approved"]] = Query(default=None),
    access: RestaurantAccess = Depends(require_owner),
    db: Session = Depends(get_db),
):
    query = db.query(Employee).filter(Employee.restaurant_id == access.restaurant.id)
    if status:
        query = query.filter(Employee.status == status)
    return [_employee_to_dict(employee) for employee in query.order_by(Employee.id.asc()).all()]


@router.post("/{employee_id}/approve")
def approve_employee(
    employee_id: int,
    access: RestaurantAccess = Depends(require_owner),
    db: Session = Depends(get_db),
):
    employee = _get_employee(db, access.restaurant.id, employee_id)
    if employee.status != EMPLOYEE_STATUS_APPROVED:
        employee.status = EMPLOYEE_STATUS_APPROVED
        employee.joined_at = employee.joined_at or datetime.now(timezone.utc)
        _commit(db, "Could not approve employee")
        db.refresh(employee)
    return _employee_to_dict(employee)


@router.patch("/{employee_id}")
def update_employee(
    employee_id: int,
    payload: EmployeeUpdate,
    access: RestaurantAccess = Depends(require_owner),
    db: Session = Depends(get_db),
):
    employee = _get_employee(db, access.restaurant.id, employee_id)
    if payload.role is not None:
        employee.role = payload.role.strip().lower()
    if payload.salary is not None:
        employee.salary = payload.salary
    _commit(db, "Could not update employee")
    db.refresh(employee)
    return _employee_to_dict(employee)


@router.delete("/{employee_id}")
def delete_employee(
    employee_id: int,
    access: RestaurantAccess = Depends(require_owner),
    db: Session = Depends(get_db),
):
    employee = _get_employee(db, access.restaurant.id, employee_id)
    db.delete(employee)
    _commit(db, "Could not delete employee")
    return {"ok": True}
