"""
Application configuration.

All configuration is loaded from environment variables.
Never hardcode secrets or connection strings in code.
"""

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file into environment variables
load_dotenv()


def _database_url_from_parts() -> str:
    """
    Build a PostgreSQL URL from the individual DB_* variables.

    Only used when DATABASE_URL itself is not set.
    """
    host = os.getenv("DB_HOST", "localhost")
    port = os.getenv("DB_PORT", "5432")
    name = os.getenv("DB_NAME", "bank_management")
    user = os.getenv("DB_USER", "postgres")
    password = os.getenv("DB_PASSWORD", "")

    credentials = f"{user}:{password}" if password else user
    return f"postgresql://{credentials}@{host}:{port}/{name}"


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Bank Ledger"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL") or _database_url_from_parts()

    # Store boundary: every statement and every wait for a pooled
    # connection is bounded, so a stuck lock surfaces as a failure.
    STATEMENT_TIMEOUT_MS: int = int(
        os.getenv("LEDGER_STATEMENT_TIMEOUT_MS", "5000")
    )
    POOL_TIMEOUT: int = int(os.getenv("LEDGER_POOL_TIMEOUT", "30"))

    # Ledger
    HISTORY_LIMIT: int = int(os.getenv("LEDGER_HISTORY_LIMIT", "50"))


@lru_cache()
def get_settings() -> Settings:
    """
    Return cached settings instance.

    Using lru_cache means the Settings object is created once
    and reused for all subsequent calls.
    """
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Install a basic root handler for the ledger's log events."""
    logging.basicConfig(
        level=level or get_settings().LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
