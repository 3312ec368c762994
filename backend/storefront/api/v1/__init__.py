"""Versioned API router."""

from fastapi import APIRouter

from . import forms, health, pricing, site_settings

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(site_settings.router)
router.include_router(pricing.router)
router.include_router(forms.router)

__all__ = ["router"]
