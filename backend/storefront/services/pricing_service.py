"""Pricing engine for room prices and coupon discounts."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import (
    ROUND_HALF_UP,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    localcontext,
)
from enum import Enum
from typing import Any, Union

from storefront.core.settings import SiteSettings

MONEY_PLACES = Decimal("0.01")
HUNDRED = Decimal("100")
COUPON_DISCOUNT_PERCENT = Decimal("15")
ANNUAL_COUPON_VALID_DAYS = 365

Number = Union[Decimal, int, float, str]


class CouponType(str, Enum):
    """Purchasable coupon kinds."""

    ONE_TIME = "one-time"
    ANNUAL = "annual"


@dataclass(frozen=True, slots=True)
class PricingCalculation:
    """Customer-facing price breakdown for a single room.

    ``subtotal`` is derived from the additive components on every access.
    The coupon fields are only populated by :func:`apply_coupon_discount`.
    """

    room_price: Decimal
    profit_margin: Decimal
    profit: Decimal
    vat: Decimal
    extra_fee: Decimal
    coupon_discount: Decimal | None = None
    discounted_profit: Decimal | None = None
    total_with_coupon: Decimal | None = None

    @property
    def subtotal(self) -> Decimal:
        return self.room_price + self.profit + self.vat + self.extra_fee

    @property
    def with_coupon(self) -> bool:
        return self.total_with_coupon is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "room_price": self.room_price,
            "profit_margin": self.profit_margin,
            "profit": self.profit,
            "vat": self.vat,
            "extra_fee": self.extra_fee,
            "subtotal": self.subtotal,
            "coupon_discount": self.coupon_discount,
            "discounted_profit": self.discounted_profit,
            "total_with_coupon": self.total_with_coupon,
        }


@dataclass(frozen=True, slots=True)
class Savings:
    savings_amount: Decimal
    savings_percent: Decimal


@dataclass(frozen=True, slots=True)
class CouponOffer:
    """A coupon option presented next to a room price."""

    type: CouponType
    price: Decimal
    discount_percent: Decimal
    valid_days: int | None
    description: str
    savings_amount: Decimal
    savings_percent: Decimal


@dataclass(frozen=True, slots=True)
class CouponPurchaseIntent:
    """What the checkout needs to start a coupon purchase."""

    coupon_type: CouponType
    coupon_price: Decimal
    booking_total: Decimal
    user_id: str | None
    user_email: str | None
    requires_login: bool


def to_decimal(value: Number) -> Decimal:
    """Convert a number to ``Decimal``; floats go through their shortest repr."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def calculate_room_pricing(room_price: Number, settings: SiteSettings) -> PricingCalculation:
    """Apply margin, VAT on the marked-up price, then the fixed fee."""
    price = to_decimal(room_price)
    profit = price * settings.profit_margin / HUNDRED
    vat = (price + profit) * settings.default_vat_rate / HUNDRED
    return PricingCalculation(
        room_price=price,
        profit_margin=settings.profit_margin,
        profit=profit,
        vat=vat,
        extra_fee=settings.extra_fee,
    )


def apply_coupon_discount(pricing: PricingCalculation) -> PricingCalculation:
    """Take 15% off the profit component.

    VAT is carried over from ``pricing`` unchanged; the discount does not
    shrink the taxable base.
    """
    coupon_discount = pricing.profit * COUPON_DISCOUNT_PERCENT / HUNDRED
    discounted_profit = pricing.profit - coupon_discount
    total_with_coupon = (
        pricing.room_price + discounted_profit + pricing.vat + pricing.extra_fee
    )
    return replace(
        pricing,
        coupon_discount=coupon_discount,
        discounted_profit=discounted_profit,
        total_with_coupon=total_with_coupon,
    )


def quote_room(
    room_price: Number,
    settings: SiteSettings,
    coupon: CouponType | None = None,
) -> PricingCalculation:
    pricing = calculate_room_pricing(room_price, settings)
    if coupon is None:
        return pricing
    return apply_coupon_discount(pricing)


def format_price(price: Number, currency: str = "EUR") -> str:
    """Render ``price`` with two decimals, independent of locale."""
    value = to_decimal(price)
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the two places
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        rounded = value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)
    return f"{rounded:.2f} {currency}"


def calculate_savings(original_price: Number, coupon_price: Number) -> Savings:
    """Compare a price with a coupon price.

    A zero ``original_price`` yields NaN or Infinity for the percentage;
    callers that care must check before calling.
    """
    original = to_decimal(original_price)
    savings_amount = original - to_decimal(coupon_price)
    with localcontext() as ctx:
        ctx.traps[DivisionByZero] = False
        ctx.traps[InvalidOperation] = False
        savings_percent = savings_amount / original * HUNDRED
    return Savings(savings_amount=savings_amount, savings_percent=savings_percent)


def coupon_price_for(coupon_type: CouponType, settings: SiteSettings) -> Decimal:
    if coupon_type is CouponType.ANNUAL:
        return settings.annual_coupon_price
    return settings.one_time_coupon_price


def build_coupon_offers(room_price: Number, settings: SiteSettings) -> list[CouponOffer]:
    """Return the one-time and annual offers with savings against ``room_price``."""
    descriptions = {
        CouponType.ONE_TIME: "15% off on your current booking",
        CouponType.ANNUAL: "15% off on all bookings for 1 year",
    }
    offers: list[CouponOffer] = []
    for coupon_type in (CouponType.ONE_TIME, CouponType.ANNUAL):
        price = coupon_price_for(coupon_type, settings)
        savings = calculate_savings(room_price, price)
        offers.append(
            CouponOffer(
                type=coupon_type,
                price=price,
                discount_percent=COUPON_DISCOUNT_PERCENT,
                valid_days=(
                    ANNUAL_COUPON_VALID_DAYS
                    if coupon_type is CouponType.ANNUAL
                    else None
                ),
                description=descriptions[coupon_type],
                savings_amount=savings.savings_amount,
                savings_percent=savings.savings_percent,
            )
        )
    return offers


def build_purchase_intent(
    coupon_type: CouponType,
    settings: SiteSettings,
    *,
    booking_total: Number,
    user_id: str | None = None,
    user_email: str | None = None,
) -> CouponPurchaseIntent:
    return CouponPurchaseIntent(
        coupon_type=coupon_type,
        coupon_price=coupon_price_for(coupon_type, settings),
        booking_total=to_decimal(booking_total),
        user_id=user_id,
        user_email=user_email,
        requires_login=not user_email,
    )
