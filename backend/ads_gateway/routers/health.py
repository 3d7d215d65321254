from fastapi import APIRouter, Depends
from ads_gateway import __version__
from ads_gateway.config import Settings
from ads_gateway.deps import get_app_settings
from ads_gateway.errors import utc_timestamp
from ads_gateway.models.ads import HealthResponse

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(settings: Settings = Depends(get_app_settings)):
    """Liveness check. Does not touch credentials or the Ads API."""
    return HealthResponse(
        timestamp=utc_timestamp(),
        version=__version__,
        environment=settings.environment,
    )
