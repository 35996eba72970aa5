import os

from dotenv import load_dotenv

# .env in the working directory, if any; real environment variables win
load_dotenv()


def _csv(name: str) -> list[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


ENV = os.getenv("ENV", "dev").strip().lower()
IS_DEV = ENV in {"dev", "development", "local"}
IS_TEST = ENV == "test"
IS_PROD = ENV in {"prod", "production"}

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./foodhub.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Wildcards are ignored: credentials are allowed, so origins must be explicit.
CORS_ORIGINS = [origin for origin in _csv("CORS_ORIGINS") if origin != "*"]
if IS_DEV and not CORS_ORIGINS:
    CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY") or ("" if IS_PROD else "dev-only-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "1440"))

# Empty disables GET /internal/metrics entirely.
INTERNAL_METRICS_TOKEN = os.getenv("INTERNAL_METRICS_TOKEN", "").strip()
