"""Boot-time guards: refuse a misconfigured database before serving orders."""
from __future__ import annotations

import logging
from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from foodhub.core.config import DATABASE_URL, IS_PROD, IS_TEST, JWT_SECRET_KEY

logger = logging.getLogger(__name__)
MIGRATIONS_PREFIX = "[MIGRATIONS]"


class MigrationStateError(RuntimeError):
    pass


def validate_database_environment() -> None:
    if IS_PROD and DATABASE_URL.startswith("sqlite"):
        logger.critical("%s refusing sqlite database in production", MIGRATIONS_PREFIX)
        raise MigrationStateError("SQLite cannot back a production deployment")


def validate_security_settings() -> None:
    if IS_PROD and not JWT_SECRET_KEY:
        # an empty HMAC key lets anyone sign tokens for any user
        logger.critical("%s JWT_SECRET_KEY is not set in production", MIGRATIONS_PREFIX)
        raise MigrationStateError("JWT_SECRET_KEY must be set in production")


def expected_revisions(alembic_config_path: Path) -> set[str]:
    if not alembic_config_path.is_file():
        logger.critical("%s missing alembic config path=%s", MIGRATIONS_PREFIX, alembic_config_path)
        raise MigrationStateError(f"Alembic config not found at {alembic_config_path}")
    scripts = ScriptDirectory.from_config(Config(str(alembic_config_path)))
    return set(scripts.get_heads())


def applied_revisions(engine: Engine) -> set[str] | None:
    """Revisions stamped in ``alembic_version``; ``None`` when never migrated."""
    with engine.connect() as connection:
        if not inspect(connection).has_table("alembic_version"):
            return None
        rows = connection.exec_driver_sql("SELECT version_num FROM alembic_version").fetchall()
    return {row[0] for row in rows if row[0]}


def ensure_migrations_applied(*, engine: Engine, alembic_config_path: Path) -> None:
    if IS_TEST:
        logger.info("%s migration check disabled for tests", MIGRATIONS_PREFIX)
        return

    expected = expected_revisions(alembic_config_path)
    applied = applied_revisions(engine)
    if applied is None:
        logger.critical("%s database was never migrated; run `alembic upgrade head`", MIGRATIONS_PREFIX)
        raise MigrationStateError("Database has no migration state")
    if applied != expected:
        logger.critical(
            "%s schema out of date applied=%s head=%s",
            MIGRATIONS_PREFIX,
            sorted(applied),
            sorted(expected),
        )
        raise MigrationStateError("Pending migrations detected")

    logger.info("%s schema at head=%s", MIGRATIONS_PREFIX, sorted(expected))
