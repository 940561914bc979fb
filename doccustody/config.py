import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _resolve_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    environment = os.getenv("ENVIRONMENT", "").strip().lower()
    if environment == "development":
        return "postgresql+psycopg://localhost:5434/doccustody"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL for non-development "
        "environments or set ENVIRONMENT=development for local defaults."
    )


def _resolve_rollback_mode() -> str:
    mode = os.getenv("CUSTODY_ROLLBACK_MODE", "delete").strip().lower()
    if mode not in {"delete", "compensate"}:
        raise ValueError(
            f"CUSTODY_ROLLBACK_MODE must be 'delete' or 'compensate', got {mode!r}"
        )
    return mode


@dataclass(frozen=True)
class Settings:
    database_url: str = _resolve_database_url()
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "1800"))
    # Upper bound on a single statement / lock wait
    db_statement_timeout_ms: int = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000"))

    # Custody
    custody_rollback_mode: str = _resolve_rollback_mode()
    custody_admin_role: str = os.getenv("CUSTODY_ADMIN_ROLE", "admin")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_format: str = os.getenv("LOG_FORMAT", "text").lower()


settings = Settings()
