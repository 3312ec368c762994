"""Pricing schema definitions."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.services.pricing_service import CouponType


class PricingQuoteRequest(BaseModel):
    """Input payload for pricing a room."""

    room_price: Decimal = Field(ge=0)
    coupon_type: CouponType | None = None
    currency: str | None = Field(default=None, min_length=1, max_length=8)


class PricingQuoteRead(BaseModel):
    """Price breakdown with display strings."""

    room_price: Decimal
    profit_margin: Decimal
    profit: Decimal
    vat: Decimal
    extra_fee: Decimal
    subtotal: Decimal
    coupon_type: CouponType | None = None
    coupon_discount: Decimal | None = None
    discounted_profit: Decimal | None = None
    total_with_coupon: Decimal | None = None
    currency: str
    display_price: str
    display_total_with_coupon: str | None = None


class CouponOfferRead(BaseModel):
    type: CouponType
    price: Decimal
    discount_percent: Decimal
    valid_days: int | None
    description: str
    display_price: str
    savings_amount: Decimal
    savings_percent: Decimal | None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("savings_percent", mode="before")
    @classmethod
    def _drop_non_finite(cls, value: Decimal | None) -> Decimal | None:
        if isinstance(value, Decimal) and not value.is_finite():
            return None
        return value


class CouponOffersRead(BaseModel):
    room_price: Decimal
    currency: str
    offers: list[CouponOfferRead]


class PurchaseIntentRequest(BaseModel):
    coupon_type: CouponType
    booking_total: Decimal = Field(ge=0)
    user_id: str | None = None
    user_email: str | None = None


class PurchaseIntentRead(BaseModel):
    coupon_type: CouponType
    coupon_price: Decimal
    booking_total: Decimal
    user_id: str | None
    user_email: str | None
    requires_login: bool

    model_config = ConfigDict(from_attributes=True)
