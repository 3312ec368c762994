"""Health check endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends

from storefront.api.deps import get_app_settings
from storefront.core.config import Settings

router = APIRouter()


@router.get("", summary="Service health status")
async def healthcheck(
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> dict[str, str]:
    """Return application health metadata."""
    return {
        "status": "ok",
        "service": settings.app_name,
        "timestamp": datetime.now(UTC).isoformat(),
        "environment": settings.app_env,
    }
