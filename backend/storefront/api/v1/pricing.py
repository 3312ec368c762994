"""Pricing-related API endpoints."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from storefront.api import deps
from storefront.core.config import Settings
from storefront.core.settings import SiteSettings
from storefront.schemas.pricing import (
    CouponOfferRead,
    CouponOffersRead,
    PricingQuoteRead,
    PricingQuoteRequest,
    PurchaseIntentRead,
    PurchaseIntentRequest,
)
from storefront.services import pricing_service

router = APIRouter(
    prefix="/pricing",
    tags=["pricing"],
    dependencies=[Depends(deps.enforce_api_rate_limit)],
)


@router.post("/quote", response_model=PricingQuoteRead, summary="Quote a room price")
async def quote_room_pricing(
    payload: PricingQuoteRequest,
    site_settings: Annotated[SiteSettings, Depends(deps.get_current_site_settings)],
    settings: Annotated[Settings, Depends(deps.get_app_settings)],
) -> PricingQuoteRead:
    currency = payload.currency or settings.default_currency
    pricing = pricing_service.quote_room(
        payload.room_price, site_settings, payload.coupon_type
    )
    display_total_with_coupon = None
    if pricing.total_with_coupon is not None:
        display_total_with_coupon = pricing_service.format_price(
            pricing.total_with_coupon, currency
        )
    return PricingQuoteRead(
        **pricing.to_dict(),
        coupon_type=payload.coupon_type,
        currency=currency,
        display_price=pricing_service.format_price(pricing.subtotal, currency),
        display_total_with_coupon=display_total_with_coupon,
    )


@router.get("/coupons", response_model=CouponOffersRead, summary="List coupon offers")
async def list_coupon_offers(
    room_price: Annotated[Decimal, Query(ge=0)],
    site_settings: Annotated[SiteSettings, Depends(deps.get_current_site_settings)],
    settings: Annotated[Settings, Depends(deps.get_app_settings)],
) -> CouponOffersRead:
    currency = settings.default_currency
    offers = [
        CouponOfferRead(
            type=offer.type,
            price=offer.price,
            discount_percent=offer.discount_percent,
            valid_days=offer.valid_days,
            description=offer.description,
            display_price=pricing_service.format_price(offer.price, currency),
            savings_amount=offer.savings_amount,
            savings_percent=offer.savings_percent,
        )
        for offer in pricing_service.build_coupon_offers(room_price, site_settings)
    ]
    return CouponOffersRead(room_price=room_price, currency=currency, offers=offers)


@router.post(
    "/coupons/purchase-intent",
    response_model=PurchaseIntentRead,
    summary="Prepare a coupon purchase",
)
async def create_purchase_intent(
    payload: PurchaseIntentRequest,
    site_settings: Annotated[SiteSettings, Depends(deps.get_current_site_settings)],
) -> PurchaseIntentRead:
    intent = pricing_service.build_purchase_intent(
        payload.coupon_type,
        site_settings,
        booking_total=payload.booking_total,
        user_id=payload.user_id,
        user_email=payload.user_email,
    )
    return PurchaseIntentRead.model_validate(intent)
