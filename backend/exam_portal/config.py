import logging
import os
from dotenv import load_dotenv

load_dotenv()  # loads .env if present


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # --- Security ---
    SECRET = os.getenv("SECRET", "dev-secret-please-change")
    JWT_LIFETIME_SECONDS = int(os.getenv("JWT_LIFETIME_SECONDS", "86400"))

    # --- Database ---
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./exam_portal.db")
    SCHEMA_SEARCH_PATH = os.getenv("SCHEMA_SEARCH_PATH")
    DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "30000"))
    SQL_ECHO = _env_flag("SQL_ECHO")

    # --- Accounts ---
    # Shared credential for accounts created without an explicit password
    DEFAULT_USER_PASSWORD = os.getenv("DEFAULT_USER_PASSWORD", "portal@123")
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
    ADMIN_NAME = os.getenv("ADMIN_NAME", "Admin")

    # --- Uploads ---
    MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(2 * 1024 * 1024)))

    # NOTE: exact origins used by the frontend dev server (no trailing slash)
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    ]

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()


def configure_logging():
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
