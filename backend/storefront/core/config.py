"""Application configuration via pydantic settings."""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed application configuration."""

    app_env: str = Field("local", alias="APP_ENV")
    app_name: str = Field("Hotel Storefront API", alias="APP_NAME")
    api_v1_prefix: str = Field("/api/v1", alias="API_V1_PREFIX")

    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    rate_limit_backend: Literal["memory", "redis"] = Field(
        "memory", alias="RATE_LIMIT_BACKEND"
    )
    rate_limit_key_prefix: str = Field("storefront:rl:", alias="RATE_LIMIT_KEY_PREFIX")
    rate_limit_sweep_interval_seconds: float = Field(
        300.0, alias="RATE_LIMIT_SWEEP_INTERVAL_SECONDS"
    )
    rate_limit_max_idle_seconds: float = Field(
        3600.0, alias="RATE_LIMIT_MAX_IDLE_SECONDS"
    )

    csrf_backend: Literal["memory", "redis"] = Field("memory", alias="CSRF_BACKEND")
    csrf_key_prefix: str = Field("storefront:csrf:", alias="CSRF_KEY_PREFIX")
    csrf_token_ttl_seconds: int = Field(86400, alias="CSRF_TOKEN_TTL_SECONDS")
    honeypot_key_prefix: str = Field("storefront:hp:", alias="HONEYPOT_KEY_PREFIX")
    session_cookie_name: str = Field("storefront_session", alias="SESSION_COOKIE_NAME")
    session_cookie_secure: bool = Field(False, alias="SESSION_COOKIE_SECURE")

    backend_api_url: str | None = Field(default=None, alias="BACKEND_API_URL")
    backend_timeout_seconds: float = Field(10.0, alias="BACKEND_TIMEOUT_SECONDS")

    default_currency: str = Field("EUR", alias="DEFAULT_CURRENCY")
    site_profit_margin: Decimal = Field(Decimal("20"), alias="SITE_PROFIT_MARGIN")
    site_default_vat_rate: Decimal = Field(
        Decimal("20"), alias="SITE_DEFAULT_VAT_RATE"
    )
    site_extra_fee: Decimal = Field(Decimal("0"), alias="SITE_EXTRA_FEE")
    site_one_time_coupon_price: Decimal = Field(
        Decimal("9.99"), alias="SITE_ONE_TIME_COUPON_PRICE"
    )
    site_annual_coupon_price: Decimal = Field(
        Decimal("49.99"), alias="SITE_ANNUAL_COUPON_PRICE"
    )

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        alias="CORS_ALLOW_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[3] / ".env",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]
