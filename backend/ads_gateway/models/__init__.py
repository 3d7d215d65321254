from ads_gateway.models.ads import (
    AdsSearchRequest,
    AuthTestResponse,
    HealthResponse,
    OAuthCallbackResponse,
    UpstreamResponse,
)
from ads_gateway.models.credentials import (
    CredentialConfig,
    OAuth2Credentials,
    ServiceAccountCredentials,
)

__all__ = [
    "AdsSearchRequest",
    "AuthTestResponse",
    "HealthResponse",
    "OAuthCallbackResponse",
    "UpstreamResponse",
    "CredentialConfig",
    "OAuth2Credentials",
    "ServiceAccountCredentials",
]
