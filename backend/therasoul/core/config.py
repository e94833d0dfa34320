# backend/therasoul/core/config.py
from decimal import Decimal
import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Database
    database_url: str = Field(
        default="sqlite:///./therasoul.db",
        alias="DATABASE_URL",
        description="SQLAlchemy URL for the sessions/therapists store",
    )
    sql_echo: bool = Field(default=False, alias="SQL_ECHO")
    auto_create_tables: bool = Field(
        default=True,
        alias="AUTO_CREATE_TABLES",
        description="Create missing tables on startup (development convenience)",
    )

    # Logging / HTTP
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins_raw: str = Field(
        default="http://localhost:5173,https://localhost:5173",
        alias="CORS_ORIGINS",
        description="Comma separated list of allowed CORS origins",
    )

    # Session lifecycle
    meet_link_base_url: str = Field(
        default="https://meet.google.com",
        alias="MEET_LINK_BASE_URL",
        description="Base URL used when issuing meeting links for online sessions",
    )
    late_cancellation_window_hours: int = Field(
        default=24,
        ge=0,
        alias="LATE_CANCELLATION_WINDOW_HOURS",
        description="Confirmed sessions cancelled inside this window are flagged as late",
    )
    session_timezone: str = Field(
        default="Asia/Kolkata",
        alias="SESSION_TIMEZONE",
        description="Timezone in which session date/time strings are interpreted",
    )

    # Slot locks
    slot_lock_redis_url: Optional[str] = Field(
        default=None,
        alias="SLOT_LOCK_REDIS_URL",
        description="Redis URL for cross-process slot locks (in-process locks when unset)",
    )
    slot_lock_namespace: str = Field(default="therasoul", alias="SLOT_LOCK_NAMESPACE")
    slot_lock_ttl_seconds: int = Field(default=30, ge=1, alias="SLOT_LOCK_TTL_SECONDS")
    slot_lock_wait_seconds: float = Field(default=5.0, ge=0, alias="SLOT_LOCK_WAIT_SECONDS")

    # Payments (mock gateway)
    payment_currency: str = Field(default="INR", alias="PAYMENT_CURRENCY")
    mock_payment_max_amount: Decimal = Field(
        default=Decimal("100000"),
        alias="MOCK_PAYMENT_MAX_AMOUNT",
        description="Mock gateway declines authorizations above this amount",
    )

    # Notifications
    notification_inbox_limit: int = Field(
        default=100,
        ge=1,
        alias="NOTIFICATION_INBOX_LIMIT",
        description="Maximum notifications retained per user in the in-app inbox",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @property
    def cors_origins(self) -> List[str]:
        return [item.strip() for item in self.cors_origins_raw.split(",") if item.strip()]


settings = Settings()
