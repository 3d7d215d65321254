from ads_gateway.routers.ads import router as ads_router
from ads_gateway.routers.health import router as health_router
from ads_gateway.routers.oauth import router as oauth_router

__all__ = ["ads_router", "health_router", "oauth_router"]
