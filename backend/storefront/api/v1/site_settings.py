"""Site settings endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from storefront.api import deps
from storefront.core.config import Settings
from storefront.core.settings import SiteSettings
from storefront.schemas.settings import SiteSettingsRead

router = APIRouter(
    prefix="/settings",
    tags=["settings"],
    dependencies=[Depends(deps.enforce_api_rate_limit)],
)


@router.get("/site", response_model=SiteSettingsRead, summary="Current pricing settings")
async def read_site_settings(
    site_settings: Annotated[SiteSettings, Depends(deps.get_current_site_settings)],
    settings: Annotated[Settings, Depends(deps.get_app_settings)],
) -> SiteSettingsRead:
    return SiteSettingsRead(
        **site_settings.model_dump(), currency=settings.default_currency
    )
