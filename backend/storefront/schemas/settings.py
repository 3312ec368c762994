"""Site settings schema definitions."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class SiteSettingsRead(BaseModel):
    profit_margin: Decimal
    default_vat_rate: Decimal
    extra_fee: Decimal
    one_time_coupon_price: Decimal
    annual_coupon_price: Decimal
    currency: str

    model_config = ConfigDict(from_attributes=True)
