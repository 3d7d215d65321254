import logging
from typing import Any, Dict, Optional
import httpx
from ads_gateway.config import Settings
from ads_gateway.services.credentials import GOOGLE_TOKEN_URI

logger = logging.getLogger(__name__)


class OAuthExchangeError(Exception):
    """The token endpoint rejected the authorization code."""


async def exchange_authorization_code(
    settings: Settings,
    code: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """
    Exchange an OAuth2 authorization code for tokens.

    Args:
        settings: Settings carrying the OAuth2 client ID, secret and redirect URI
        code: Authorization code from the consent redirect
        transport: Optional httpx transport (tests)

    Returns:
        Token endpoint response (access_token, refresh_token, expires_in, ...)

    Raises:
        OAuthExchangeError: If the token endpoint returns an error
        httpx.HTTPError: On network failure
    """
    data = {
        "grant_type": "authorization_code",
        "code": code,
        "client_id": settings.google_client_id,
        "client_secret": settings.google_client_secret,
    }
    if settings.google_oauth_redirect_uri:
        data["redirect_uri"] = settings.google_oauth_redirect_uri

    async with httpx.AsyncClient(timeout=30.0, transport=transport) as client:
        response = await client.post(GOOGLE_TOKEN_URI, data=data)

    if response.status_code != 200:
        raise OAuthExchangeError(
            f"Failed to exchange authorization code (status {response.status_code}): {response.text}"
        )

    return response.json()
