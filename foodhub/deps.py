# foodhub/deps.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from foodhub.core.database import get_db
from foodhub.core.request_context import set_request_context
from foodhub.models.employee import Employee
from foodhub.models.restaurant import Restaurant
from foodhub.models.user import User
from foodhub.services.auth import decode_access_token
from foodhub.services.restaurants import EMPLOYEE_STATUS_APPROVED, get_restaurant_by_slug

# Swagger "Authorize" (OAuth2 password flow) posts to this endpoint
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

logger = logging.getLogger(__name__)

OWNER = "owner"
STAFF = "staff"


@dataclass
class RestaurantAccess:
    restaurant: Restaurant
    user: User
    role: str
    employee: Optional[Employee] = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _extract_user_id(claims: Mapping[str, Any]) -> Optional[int]:
    """User id from ``sub`` (or the ``user_id`` copy); ``None`` if not numeric."""
    raw = claims.get("sub")
    if raw is None:
        raw = claims.get("user_id")
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    text = str(raw).strip() if raw is not None else ""
    return int(text) if text.isdigit() else None


def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    try:
        claims = decode_access_token(token)
    except ValueError:
        raise _unauthorized("Invalid or expired token")

    user_id = _extract_user_id(claims)
    if user_id is None:
        raise _unauthorized("Invalid token (missing user id)")

    user = db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
    if user is None:
        raise _unauthorized("User not found")

    request.state.user = user
    set_request_context(user_id=str(user.id))
    return user


def get_restaurant_or_404(db: Session, slug: str) -> Restaurant:
    restaurant = get_restaurant_by_slug(db, slug)
    if restaurant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Restaurant not found")
    return restaurant


def _log_access_denied(*, reason: str, user: User, restaurant: Restaurant, request: Request) -> None:
    logger.warning(
        "restaurant access denied reason=%s user_id=%s slug=%s endpoint=%s %s",
        reason,
        user.id,
        restaurant.slug,
        request.method,
        request.url.path,
    )


def require_restaurant_role(roles: Iterable[str]):
    """Dependency factory: the caller must hold one of ``roles`` in ``{slug}``.

    ``owner`` is the user who registered the restaurant; ``staff`` is any
    approved employee. Owners pass every ``staff`` check.
    """
    allowed = {role.strip().lower() for role in roles}
    if STAFF in allowed:
        allowed.add(OWNER)

    def _dependency(
        slug: str,
        request: Request,
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> RestaurantAccess:
        restaurant = get_restaurant_or_404(db, slug)
        set_request_context(restaurant=restaurant.slug)

        employee = None
        if int(restaurant.owner_id) == int(user.id):
            role = OWNER
        else:
            employee = (
                db.query(Employee)
                .filter(
                    Employee.user_id == user.id,
                    Employee.restaurant_id == restaurant.id,
                    Employee.status == EMPLOYEE_STATUS_APPROVED,
                )
                .first()
            )
            role = STAFF if employee is not None else None

        if role is None:
            _log_access_denied(reason="not_member", user=user, restaurant=restaurant, request=request)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a member of this restaurant")
        if role not in allowed:
            _log_access_denied(reason="role_denied", user=user, restaurant=restaurant, request=request)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permission")

        return RestaurantAccess(restaurant=restaurant, user=user, role=role, employee=employee)

    return _dependency


require_owner = require_restaurant_role([OWNER])
require_staff = require_restaurant_role([STAFF])
