"""API router modules."""

from fastapi import APIRouter

from storefront.core.config import get_settings

from .v1 import router as api_v1_router


def build_api_router(prefix: str | None = None) -> APIRouter:
    api_router = APIRouter()
    api_router.include_router(
        api_v1_router,
        prefix=get_settings().api_v1_prefix if prefix is None else prefix,
    )
    return api_router


__all__ = ["build_api_router"]
