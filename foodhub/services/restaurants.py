from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from foodhub.core.errors import AlreadyExistsError, PersistenceError, ValidationError
from foodhub.models.employee import Employee
from foodhub.models.restaurant import Restaurant
from foodhub.models.user import User
from foodhub.services.auth import hash_password
from foodhub.utils.slug import is_valid_slug, normalize_slug

logger = logging.getLogger(__name__)

EMPLOYEE_STATUS_PENDING = "pending"
EMPLOYEE_STATUS_APPROVED = "approved"


@dataclass
class Landing:
    role: str
    slug: str
    path: str


def slug_exists(db: Session, slug: str) -> bool:
    return db.query(Restaurant.id).filter(Restaurant.slug == slug).first() is not None


def check_slug(db: Session, raw_slug: str) -> tuple[str, bool]:
    slug = normalize_slug(raw_slug)
    if not is_valid_slug(slug):
        return slug, False
    return slug, not slug_exists(db, slug)


def get_restaurant_by_slug(db: Session, slug: str) -> Restaurant | None:
    return db.query(Restaurant).filter(Restaurant.slug == normalize_slug(slug)).first()


def _new_user(db: Session, full_name: str, email: str, password: str) -> User:
    normalized_email = email.strip().lower()
    if db.query(User.id).filter(User.email == normalized_email).first() is not None:
        raise AlreadyExistsError("Email is already registered")
    user = User(
        full_name=full_name.strip(),
        email=normalized_email,
        password_hash=hash_password(password),
    )
    db.add(user)
    db.flush()
    return user


def register_owner(
    db: Session,
    *,
    full_name: str,
    email: str,
    password: str,
    restaurant_name: str,
    slug: str,
    address: str | None = None,
    phone: str | None = None,
) -> tuple[User, Restaurant]:
    """Creates the owner account and its restaurant in a single transaction."""
    normalized_slug = normalize_slug(slug)
    if not is_valid_slug(normalized_slug):
        raise ValidationError("Slug must have at least 3 characters (letters, digits or hyphens)")

    try:
        if slug_exists(db, normalized_slug):
            raise AlreadyExistsError(f"Slug '{normalized_slug}' is already taken")
        user = _new_user(db, full_name, email, password)
        restaurant = Restaurant(
            slug=normalized_slug,
            name=restaurant_name.strip(),
            address=(address or "").strip() or None,
            phone=(phone or "").strip() or None,
            owner_id=user.id,
        )
        db.add(restaurant)
        db.commit()
    except AlreadyExistsError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise AlreadyExistsError("Email or slug is already registered") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("owner registration failed slug=%s", normalized_slug)
        raise PersistenceError("Could not register the restaurant") from exc

    db.refresh(user)
    db.refresh(restaurant)
    logger.info("restaurant registered restaurant_id=%s slug=%s owner_id=%s", restaurant.id, restaurant.slug, user.id)
    return user, restaurant


def register_employee(
    db: Session,
    *,
    full_name: str,
    email: str,
    password: str,
    restaurant_slug: str,
    role: str,
) -> tuple[User, Employee]:
    """Creates the account and a pending application to the restaurant."""
    restaurant = get_restaurant_by_slug(db, restaurant_slug)
    if restaurant is None:
        raise ValidationError(f"Restaurant '{restaurant_slug}' not found")

    try:
        user = _new_user(db, full_name, email, password)
        employee = Employee(
            user_id=user.id,
            restaurant_id=restaurant.id,
            role=(role or "").strip().lower() or "cashier",
            status=EMPLOYEE_STATUS_PENDING,
        )
        db.add(employee)
        db.commit()
    except AlreadyExistsError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise AlreadyExistsError("Email is already registered") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("employee registration failed restaurant_id=%s", restaurant.id)
        raise PersistenceError("Could not register the employee") from exc

    db.refresh(user)
    db.refresh(employee)
    logger.info("employee application created employee_id=%s restaurant_id=%s", employee.id, restaurant.id)
    return user, employee


def resolve_landing(db: Session, user: User) -> Landing | None:
    """Where a user lands after login: their restaurant as owner, else as approved employee."""
    owned = db.query(Restaurant).filter(Restaurant.owner_id == user.id).order_by(Restaurant.id).first()
    if owned is not None:
        return Landing(role="owner", slug=owned.slug, path=f"/FoodHub.com/{owned.slug}/owner")

    employment = (
        db.query(Employee)
        .filter(Employee.user_id == user.id, Employee.status == EMPLOYEE_STATUS_APPROVED)
        .order_by(Employee.id)
        .first()
    )
    if employment is not None:
        slug = employment.restaurant.slug
        return Landing(role="employee", slug=slug, path=f"/FoodHub.com/{slug}/employee")
    return None
