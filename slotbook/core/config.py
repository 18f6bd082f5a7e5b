# slotbook/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Set

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).resolve().parents[2] / ".env"
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


PROD_SITE_MODES: Set[str] = {"prod", "production", "live"}


def _classify_environment(raw_site_mode: str | None) -> str:
    normalized = (raw_site_mode or "").strip().lower()
    return "production" if normalized in PROD_SITE_MODES else "development"


class Settings(BaseSettings):
    # Environment (derived from SITE_MODE)
    environment: str = _classify_environment(os.getenv("SITE_MODE", "local"))
    log_level: str = Field(default="INFO", description="Root log level")

    # Data store
    database_url: str = Field(
        default="sqlite:///./slotbook.db",
        description="SQLAlchemy URL for the transactional store",
    )
    db_echo: bool = False
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Payment gateway (Razorpay-compatible orders API)
    payment_key_id: str = Field(default="", description="Gateway key id (basic auth username)")
    payment_key_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Gateway key secret; also signs order|payment ids",
    )
    payment_currency: str = "INR"
    payment_gateway_base_url: str = "https://api.razorpay.com/v1"
    payment_gateway_timeout_seconds: float = 15.0

    # Celery
    redis_url: str = "redis://localhost:6379"
    celery_broker_url: str | None = None

    # Cleanup sweeper
    slot_cleanup_interval_minutes: int = Field(
        default=60,
        ge=1,
        description="Minutes between expired-slot purges",
    )
    sweep_booked_slots: bool = Field(
        default=False,
        description="When true the sweeper also deletes expired BOOKED slots",
    )

    # Booking policies
    retain_completed_slots: bool = Field(
        default=False,
        description="Keep the BOOKED slot row when a booking completes instead of deleting it",
    )
    restrict_booking_reads: bool = Field(
        default=False,
        description="Limit get_booking to the booking's client and provider",
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("payment_key_id", mode="after")
    @classmethod
    def _strip_key_id(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("log_level", mode="after")
    @classmethod
    def _normalize_log_level(cls, v: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        level = (v or "INFO").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {v}")
        return level  # type: ignore[return-value]

    @property
    def broker_url(self) -> str:
        """Celery broker, falling back to the shared Redis URL."""
        return self.celery_broker_url or self.redis_url


settings = Settings()
