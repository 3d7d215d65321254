import logging
from typing import Optional
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from ads_gateway.config import Settings
from ads_gateway.deps import get_app_settings, get_token_provider
from ads_gateway.errors import utc_timestamp
from ads_gateway.models.ads import OAuthCallbackResponse
from ads_gateway.services.oauth import exchange_authorization_code
from ads_gateway.services.token_provider import TokenProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/oauth", tags=["oauth"])


@router.get("/callback", response_model=OAuthCallbackResponse)
async def oauth_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    settings: Settings = Depends(get_app_settings),
    token_provider: TokenProvider = Depends(get_token_provider),
):
    """
    Redirect target for the OAuth2 consent flow.

    Exchanges the authorization code when an OAuth2 client is configured.
    A newly issued refresh token replaces the in-memory one; token values
    are never returned to the browser.
    """
    if error:
        return JSONResponse(
            status_code=400,
            content={
                "error": "OAuth authorization failed",
                "details": error,
                "description": error_description,
            },
        )

    if not code:
        return JSONResponse(status_code=400, content={"error": "No authorization code received"})

    logger.info(f"Processing OAuth callback (state={state})")

    if not (settings.google_client_id and settings.google_client_secret):
        logger.warning("OAuth callback received but no OAuth2 client is configured; skipping code exchange")
        return OAuthCallbackResponse(
            success=True,
            message="OAuth callback received; no OAuth2 client configured for code exchange",
            timestamp=utc_timestamp(),
        )

    try:
        tokens = await exchange_authorization_code(
            settings,
            code,
            transport=getattr(request.app.state, "upstream_transport", None),
        )
    except Exception as e:
        logger.error(f"OAuth callback error: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "OAuth callback failed", "details": str(e)},
        )

    refresh_token = tokens.get("refresh_token")
    if refresh_token:
        logger.info("OAuth code exchange issued a new refresh token; reloading credentials")
        settings.google_refresh_token = refresh_token
        token_provider.reset()

    return OAuthCallbackResponse(
        success=True,
        message="OAuth callback processed successfully",
        refreshTokenReceived=bool(refresh_token),
        timestamp=utc_timestamp(),
    )
