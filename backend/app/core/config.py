# backend/app/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


PAYHERE_LIVE_BASE_URL = "https://www.payhere.lk"
PAYHERE_SANDBOX_BASE_URL = "https://sandbox.payhere.lk"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field(default="development", description="Deployment environment")
    is_testing: bool = Field(default=False, description="Running under the test suite")

    # Auth
    secret_key: SecretStr = Field(
        default=SecretStr("dev-secret-key-change-me"),
        description="Secret key for JWT access tokens",
    )
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 720  # 12 hours

    # Database
    database_url: str = Field(
        default="sqlite:///./kalm.db",
        description="SQLAlchemy database URL",
    )
    database_echo: bool = False

    # PayHere merchant credentials (checkout hash + notification signature)
    payhere_merchant_id: Optional[str] = Field(default=None, description="PayHere merchant ID")
    payhere_merchant_secret: Optional[SecretStr] = Field(
        default=None, description="PayHere merchant secret"
    )
    # PayHere merchant API (OAuth client credentials) used for payment status polling
    payhere_app_id: Optional[str] = Field(default=None, description="PayHere business app ID")
    payhere_app_secret: Optional[SecretStr] = Field(
        default=None, description="PayHere business app secret"
    )
    payhere_env: Literal["sandbox", "production"] = Field(
        default="production",
        description="Selects the PayHere sandbox or live API host",
    )
    payhere_referer: str = Field(
        default="https://www.kalm.lk",
        description="Referer header sent with PayHere merchant API searches",
    )

    # Daily.co video rooms
    daily_enabled: bool = Field(
        default=False,
        description="Use the real Daily.co API (fake in-memory client when false)",
    )
    daily_api_key: Optional[SecretStr] = Field(default=None, description="Daily.co REST API key")
    daily_base_url: str = Field(default="https://api.daily.co/v1")

    # Provisioning pipeline
    availability_timezone: str = Field(
        default="Asia/Colombo",
        description="Therapist scheduling zone used to match booked slots",
    )
    webhook_claim_ttl_seconds: int = Field(
        default=120,
        ge=1,
        description="Age after which an unfinished webhook claim may be taken over",
    )
    pipeline_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Upper bound for one provisioning request",
    )
    external_http_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout applied to PayHere and Daily.co HTTP calls",
    )

    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "https://www.kalm.lk",
            "https://kalm.lk",
            "http://localhost:5173",
            "http://localhost:3000",
        ]
    )

    @field_validator("availability_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        import pytz

        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @property
    def payhere_base_url(self) -> str:
        if self.payhere_env == "sandbox":
            return PAYHERE_SANDBOX_BASE_URL
        return PAYHERE_LIVE_BASE_URL

    def merchant_secret_value(self) -> str:
        """Return the PayHere merchant secret, or an empty string when unset."""
        if self.payhere_merchant_secret is None:
            return ""
        return self.payhere_merchant_secret.get_secret_value().strip()


settings = Settings()
logger.info(
    "[CONFIG] PayHere env=%s daily_enabled=%s availability_tz=%s",
    settings.payhere_env,
    settings.daily_enabled,
    settings.availability_timezone,
)
