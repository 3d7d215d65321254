import logging
from collections.abc import Mapping
from typing import Any, Callable, Optional
from fastapi.concurrency import run_in_threadpool
from ads_gateway.errors import AuthenticationError
from ads_gateway.services.auth_client import AuthClient

logger = logging.getLogger(__name__)


class TokenProvider:
    """
    Owns the process-wide AuthClient and hands out bearer tokens.

    The client is built on first use. There is no lock around that first
    build: two requests racing on a cold provider may each construct a
    client and the last one wins. Both are equivalent, so this is accepted
    for a single-instance deployment.

    No token caching happens here. Every call asks the AuthClient, which
    only refreshes when its current token is missing or expired.
    """

    def __init__(self, client_factory: Callable[[], AuthClient]):
        """
        Args:
            client_factory: Builds the AuthClient (credential resolution)
        """
        self._client_factory = client_factory
        self._client: Optional[AuthClient] = None

    def get_auth_client(self) -> AuthClient:
        """Return the AuthClient, constructing it on first call."""
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    @property
    def initialized(self) -> bool:
        return self._client is not None

    def reset(self) -> None:
        """Drop the current AuthClient so the next call re-resolves credentials."""
        self._client = None

    async def get_access_token(self) -> str:
        """
        Get a bearer token for the Google Ads API.

        Returns:
            str: Access token

        Raises:
            AuthenticationError: If the client could not be built, the
                refresh failed, or no token came back
        """
        try:
            client = self.get_auth_client()
            result = await run_in_threadpool(client.fetch_token)
            token = _normalize_token(result)
        except AuthenticationError:
            raise
        except Exception as e:
            logger.error(f"Failed to get access token: {e}")
            raise AuthenticationError(f"Authentication failed: {e}") from e

        if not token:
            logger.error("Failed to get access token: no access token received")
            raise AuthenticationError("Authentication failed: No access token received")

        return token


def _normalize_token(result: Any) -> Optional[str]:
    """Accept a plain string, a mapping with 'token', or an object with .token."""
    if result is None or isinstance(result, str):
        return result
    if isinstance(result, Mapping):
        return result.get("token")
    return getattr(result, "token", None)
