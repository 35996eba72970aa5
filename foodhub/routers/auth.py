# foodhub/routers/auth.py
from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, EmailStr, Field, model_validator
from sqlalchemy.orm import Session

from foodhub.core.database import get_db
from foodhub.core.errors import FoodHubError, to_http_exception
from foodhub.deps import get_current_user
from foodhub.models.user import User
from foodhub.services.auth import create_access_token, verify_password
from foodhub.services.restaurants import register_employee, register_owner, resolve_landing

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterPayload(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["owner", "employee"] = "owner"

    # owner
    restaurant_name: Optional[str] = Field(default=None, max_length=120)
    restaurant_slug: Optional[str] = Field(default=None, max_length=80)
    restaurant_address: Optional[str] = Field(default=None, max_length=255)
    restaurant_phone: Optional[str] = Field(default=None, max_length=30)

    # employee
    employee_restaurant_slug: Optional[str] = None
    employee_role: str = "cashier"

    @model_validator(mode="after")
    def _check_role_fields(self):
        if self.role == "owner":
            if not (self.restaurant_name or "").strip():
                raise ValueError("restaurant_name is required for owners")
            if len((self.restaurant_slug or "").strip()) < 3:
                raise ValueError("restaurant_slug must have at least 3 characters")
        elif not (self.employee_restaurant_slug or "").strip():
            raise ValueError("employee_restaurant_slug is required for employees")
        return self


class LoginPayload(BaseModel):
    username: EmailStr
    password: str


def _authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def _token_response(db: Session, user: User) -> dict:
    landing = resolve_landing(db, user)
    token = create_access_token(str(user.id))
    return {
        "access_token": token,
        "token_type": "bearer",
        "role": landing.role if landing else None,
        "restaurant_slug": landing.slug if landing else None,
        "redirect_to": landing.path if landing else None,
    }


@router.post("/register", status_code=201)
def register(payload: RegisterPayload, db: Session = Depends(get_db)):
    try:
        if payload.role == "owner":
            user, restaurant = register_owner(
                db,
                full_name=payload.full_name,
                email=payload.email,
                password=payload.password,
                restaurant_name=payload.restaurant_name or "",
                slug=payload.restaurant_slug or "",
                address=payload.restaurant_address,
                phone=payload.restaurant_phone,
            )
            return {
                "id": user.id,
                "email": user.email,
                "role": "owner",
                "restaurant_id": restaurant.id,
                "restaurant_slug": restaurant.slug,
            }

        user, employee = register_employee(
            db,
            full_name=payload.full_name,
            email=payload.email,
            password=payload.password,
            restaurant_slug=payload.employee_restaurant_slug or "",
            role=payload.employee_role,
        )
        return {
            "id": user.id,
            "email": user.email,
            "role": "employee",
            "employee_id": employee.id,
            "employee_status": employee.status,
            "restaurant_id": employee.restaurant_id,
        }
    except FoodHubError as exc:
        raise to_http_exception(exc) from exc


@router.post("/login")
def login(payload: LoginPayload, db: Session = Depends(get_db)):
    user = _authenticate(db, payload.username, payload.password)
    return _token_response(db, user)


@router.post("/token")
def token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """Used by the Swagger UI Authorize button (form-data username/password)."""
    user = _authenticate(db, form_data.username, form_data.password)
    return _token_response(db, user)


@router.get("/me")
def me(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    landing = resolve_landing(db, user)
    return {
        "id": user.id,
        "full_name": user.full_name,
        "email": user.email,
        "role": landing.role if landing else None,
        "restaurant_slug": landing.slug if landing else None,
    }
