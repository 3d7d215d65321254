import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional
import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from ads_gateway import __version__
from ads_gateway.config import Settings, get_settings
from ads_gateway.errors import ConfigurationError, error_envelope
from ads_gateway.middleware import (
    ALLOWED_HEADERS,
    ALLOWED_METHODS,
    SECURITY_HEADERS,
    cors_headers,
    register_middleware,
)
from ads_gateway.routers import ads_router, health_router, oauth_router
from ads_gateway.services.credentials import build_auth_client, load_auth_client, resolve_credential_config
from ads_gateway.services.forwarder import AdsForwarder
from ads_gateway.services.token_provider import TokenProvider

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    port = app.state.settings.port
    logger.info(f"API endpoints available at http://localhost:{port}/api/ads/")
    logger.info(f"Health check: http://localhost:{port}/api/health")
    yield
    logger.info("Shutting down gracefully")


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """
    404 and unhandled-error envelopes. Both carry CORS headers.

    The catch-all handler runs outside every @app.middleware layer, so it
    also sets the security headers itself.
    """
    error_cors = cors_headers(settings)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            # Unknown path and known path with the wrong method are both "not found"
            return JSONResponse(
                status_code=404,
                content=error_envelope(
                    "Not found",
                    message=f"Route {request.method} {request.url.path} not found",
                ),
                headers=error_cors,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(str(exc.detail)),
            headers={**error_cors, **(exc.headers or {})},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content=error_envelope(
                "Internal server error",
                message=str(exc) or "An unexpected error occurred",
            ),
            headers={**SECURITY_HEADERS, **error_cors},
        )


def create_app(
    settings: Optional[Settings] = None,
    token_provider: Optional[TokenProvider] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        settings: Gateway settings (loaded from the environment if omitted)
        token_provider: Token source; by default resolves credentials from
            settings on first use
        transport: Optional httpx transport for every Google endpoint
            (stub upstream in tests)

    ``settings`` is shared with the routes and is not read-only: the OAuth
    callback stores a newly issued refresh token on it, and the token
    provider rebuilds credentials from it after a reset.
    """
    settings = settings or get_settings()
    if token_provider is None:
        token_provider = TokenProvider(lambda: load_auth_client(settings))

    app = FastAPI(
        title="Ads API Gateway",
        description="Authenticated proxy between the PPC dashboard and the Google Ads API",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.token_provider = token_provider
    app.state.forwarder = AdsForwarder(settings, transport=transport)
    app.state.upstream_transport = transport

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=ALLOWED_METHODS,
        allow_headers=ALLOWED_HEADERS,
    )
    app.state.rate_limiter = register_middleware(app, settings)
    register_exception_handlers(app, settings)

    app.include_router(health_router)
    app.include_router(ads_router)
    app.include_router(oauth_router)

    return app


def verify_startup(settings: Settings) -> TokenProvider:
    """
    Resolve credentials and fetch one token before serving traffic.

    Raises:
        ConfigurationError: Missing env vars or no usable credential strategy
        AuthenticationError: The first token fetch failed
    """
    missing = settings.missing_required()
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    # Re-resolve from settings on every reset so a refresh token issued by
    # the OAuth callback replaces the one loaded at startup
    token_provider = TokenProvider(lambda: build_auth_client(resolve_credential_config(settings)))
    auth_client = token_provider.get_auth_client()

    logger.info(f"Testing authentication ({auth_client.strategy})")
    asyncio.run(token_provider.get_access_token())
    logger.info("Authentication test successful")

    return token_provider


def main() -> None:
    """Console entry point: check configuration and credentials, then serve."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger.info("Starting Google Ads API gateway")
    try:
        token_provider = verify_startup(settings)
    except Exception as e:
        logger.error(f"Server startup failed: {e}")
        sys.exit(1)

    uvicorn.run(
        create_app(settings, token_provider=token_provider),
        host=settings.host,
        port=settings.port,
    )


app = create_app()


if __name__ == "__main__":
    main()
