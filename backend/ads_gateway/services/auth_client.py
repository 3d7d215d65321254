from abc import ABC, abstractmethod
from typing import Any
from google.auth.transport.requests import Request


class AuthClient(ABC):
    """
    Abstract source of bearer tokens for the Google Ads API.

    Route handlers and the token provider only depend on this interface,
    never on which credential strategy is behind it.
    """

    @property
    @abstractmethod
    def strategy(self) -> str:
        """
        Name of the credential strategy in use.

        Returns:
            str: Strategy identifier (e.g., 'service_account', 'oauth2')
        """
        pass

    @abstractmethod
    def fetch_token(self) -> Any:
        """
        Return a usable access token, refreshing it first when needed.

        Blocking; callers on the event loop should run it in a thread.

        Returns:
            Either the token string or an object/mapping carrying ``token``
        """
        pass


class GoogleAuthClient(AuthClient):
    """AuthClient backed by google-auth credentials."""

    def __init__(self, credentials, strategy: str):
        """
        Args:
            credentials: google.auth.credentials.Credentials instance
            strategy: Strategy identifier reported by ``strategy``
        """
        self.credentials = credentials
        self._strategy = strategy
        self._request = Request()

    @property
    def strategy(self) -> str:
        return self._strategy

    def fetch_token(self) -> str:
        # google-auth tracks expiry itself; only hit the token endpoint when
        # there is no token yet or it is about to expire
        if not self.credentials.valid:
            self.credentials.refresh(self._request)
        return self.credentials.token
