from ads_gateway.services.auth_client import AuthClient, GoogleAuthClient
from ads_gateway.services.forwarder import AdsForwarder
from ads_gateway.services.token_provider import TokenProvider

__all__ = ["AuthClient", "GoogleAuthClient", "AdsForwarder", "TokenProvider"]
