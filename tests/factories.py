from types import SimpleNamespace

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from foodhub.core.database import Base
import foodhub.models  # noqa: F401
from foodhub.models.employee import Employee
from foodhub.models.menu_item import MenuItem
from foodhub.models.restaurant import Restaurant
from foodhub.models.table import DiningTable
from foodhub.models.user import User
from tests.fixtures_data import MENU


def make_session() -> Session:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    testing_session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    return testing_session()


def add_user(db: Session, email: str, full_name: str = "User") -> User:
    user = User(full_name=full_name, email=email, password_hash="not-a-real-hash")
    db.add(user)
    db.flush()
    return user


def seed_restaurant(db: Session, slug: str = "warung-bu-sri", owner_email: str | None = None):
    owner = add_user(db, owner_email or f"owner@{slug}.test", full_name="Owner")
    restaurant = Restaurant(slug=slug, name=slug.replace("-", " ").title(), owner_id=owner.id)
    db.add(restaurant)
    db.flush()

    tables = {}
    for number in (1, 2, 5):
        table = DiningTable(restaurant_id=restaurant.id, table_number=number, capacity=4)
        db.add(table)
        tables[number] = table

    menu = {}
    for key, data in MENU.items():
        item = MenuItem(restaurant_id=restaurant.id, name=data["name"], price=data["price"], is_available=True)
        db.add(item)
        menu[key] = item

    db.commit()
    for obj in [owner, restaurant, *tables.values(), *menu.values()]:
        db.refresh(obj)
    return SimpleNamespace(restaurant=restaurant, owner=owner, tables=tables, menu=menu)


def add_employee(db: Session, restaurant: Restaurant, email: str, status: str = "approved") -> User:
    user = add_user(db, email, full_name="Staff")
    db.add(Employee(user_id=user.id, restaurant_id=restaurant.id, role="cashier", status=status))
    db.commit()
    db.refresh(user)
    return user


def build_client(db: Session, current_user: dict | None = None):
    """TestClient over every router, bound to ``db``.

    When ``current_user`` is given, ``current_user["user"]`` replaces bearer
    authentication so tests can switch the acting user between requests.
    """
    from fastapi import FastAPI
    from fastapi.testclient import TestClient

    from foodhub.core.database import get_db
    from foodhub.deps import get_current_user
    from foodhub.middleware.observability import ObservabilityMiddleware
    from foodhub.routers.auth import router as auth_router
    from foodhub.routers.employees import router as employees_router
    from foodhub.routers.internal_metrics import router as internal_metrics_router
    from foodhub.routers.menu import public_router, router as menu_router
    from foodhub.routers.orders import router as orders_router
    from foodhub.routers.payments import router as payments_router
    from foodhub.routers.reports import router as reports_router
    from foodhub.routers.restaurants import router as restaurants_router
    from foodhub.routers.stock import router as stock_router
    from foodhub.routers.tables import router as tables_router

    app = FastAPI()
    app.add_middleware(ObservabilityMiddleware)
    for router in (
        auth_router,
        restaurants_router,
        tables_router,
        menu_router,
        public_router,
        employees_router,
        orders_router,
        payments_router,
        reports_router,
        stock_router,
        internal_metrics_router,
    ):
        app.include_router(router)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    if current_user is not None:
        app.dependency_overrides[get_current_user] = lambda: current_user["user"]
    return TestClient(app)
