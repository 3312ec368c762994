"""Specialized settings adapters for the pricing engine."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from storefront.core.config import Settings, get_settings


class SiteSettings(BaseModel):
    """Site-wide pricing configuration consumed by the pricing engine.

    Percentages are stored as whole numbers (``20`` means 20%).
    """

    profit_margin: Decimal = Field(ge=0)
    default_vat_rate: Decimal = Field(ge=0)
    extra_fee: Decimal = Field(ge=0)
    one_time_coupon_price: Decimal = Field(ge=0)
    annual_coupon_price: Decimal = Field(ge=0)

    model_config = ConfigDict(frozen=True)


def get_site_settings(settings: Settings | None = None) -> SiteSettings:
    """Return the configured pricing defaults."""

    settings = settings or get_settings()
    return SiteSettings(
        profit_margin=settings.site_profit_margin,
        default_vat_rate=settings.site_default_vat_rate,
        extra_fee=settings.site_extra_fee,
        one_time_coupon_price=settings.site_one_time_coupon_price,
        annual_coupon_price=settings.site_annual_coupon_price,
    )
