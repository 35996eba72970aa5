import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from foodhub.core.config import CORS_ORIGINS, DATABASE_URL, ENV, IS_DEV, IS_TEST
from foodhub.core.database import Base, engine
from foodhub.core.logging_setup import configure_logging
from foodhub.core.startup_checks import (
    ensure_migrations_applied,
    validate_database_environment,
    validate_security_settings,
)
from foodhub.middleware.observability import ObservabilityMiddleware
import foodhub.models  # noqa: F401  registers every table on Base.metadata
import foodhub.services.event_handlers  # noqa: F401  subscribes the order event loggers

from foodhub.routers import (
    auth,
    employees,
    internal_metrics,
    menu,
    orders,
    payments,
    reports,
    restaurants,
    stock,
    tables,
)

configure_logging()
logger = logging.getLogger(__name__)

STARTUP_PREFIX = "[STARTUP]"
ALEMBIC_CONFIG_PATH = Path(os.getenv("ALEMBIC_CONFIG") or Path(__file__).resolve().parents[1] / "alembic.ini")

ROUTERS = (
    auth.router,
    restaurants.router,
    tables.router,
    menu.router,
    menu.public_router,
    employees.router,
    orders.router,
    payments.router,
    reports.router,
    stock.router,
    internal_metrics.router,
)


def _startup_tasks() -> None:
    validate_security_settings()
    validate_database_environment()
    if DATABASE_URL.startswith("sqlite") and (IS_DEV or IS_TEST):
        # local sqlite files are bootstrapped; every other database goes through alembic
        Base.metadata.create_all(bind=engine)
        logger.info("%s sqlite schema ensured env=%s", STARTUP_PREFIX, ENV)
        return
    ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)


@asynccontextmanager
async def lifespan(_: FastAPI):
    try:
        _startup_tasks()
    except Exception:
        logger.exception("%s startup aborted", STARTUP_PREFIX)
        raise
    yield


app = FastAPI(title="FoodHub POS API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)

for router in ROUTERS:
    app.include_router(router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
