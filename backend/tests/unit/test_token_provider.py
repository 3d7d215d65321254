"""
Unit tests for the token provider and the google-auth backed client.
"""
import pytest
from types import SimpleNamespace
from unittest.mock import Mock
from ads_gateway.errors import AuthenticationError
from ads_gateway.services.auth_client import GoogleAuthClient
from ads_gateway.services.token_provider import TokenProvider


class FakeCredentials:
    """Mimics google.auth credentials: refresh() mints a token that stays valid."""

    def __init__(self, token=None, valid=False):
        self.token = token
        self.valid = valid
        self.refresh_calls = 0

    def refresh(self, request):
        self.refresh_calls += 1
        self.token = f"ya29.token-{self.refresh_calls}"
        self.valid = True

    def expire(self):
        self.valid = False


@pytest.mark.unit
class TestTokenProvider:
    """Test lazy client construction and token normalization."""

    @pytest.mark.asyncio
    async def test_client_built_lazily_once(self, auth_client):
        factory = Mock(return_value=auth_client)
        provider = TokenProvider(factory)

        assert factory.call_count == 0
        assert not provider.initialized

        await provider.get_access_token()
        await provider.get_access_token()
        await provider.get_access_token()

        assert factory.call_count == 1
        assert auth_client.calls == 3

    @pytest.mark.asyncio
    async def test_reset_rebuilds_client(self, make_auth_client):
        clients = [make_auth_client(token="first"), make_auth_client(token="second")]
        provider = TokenProvider(lambda: clients.pop(0))

        assert await provider.get_access_token() == "first"
        provider.reset()
        assert await provider.get_access_token() == "second"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("result", [
        "ya29.plain",
        {"token": "ya29.plain"},
        SimpleNamespace(token="ya29.plain"),
    ])
    async def test_token_shapes_normalized(self, make_auth_client, result):
        provider = TokenProvider(lambda: make_auth_client(token=result))

        assert await provider.get_access_token() == "ya29.plain"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("result", [None, "", {"token": None}, {}, SimpleNamespace(token="")])
    async def test_empty_token_is_authentication_error(self, make_auth_client, result):
        provider = TokenProvider(lambda: make_auth_client(token=result))

        with pytest.raises(AuthenticationError, match="No access token received"):
            await provider.get_access_token()

    @pytest.mark.asyncio
    async def test_refresh_failure_wrapped(self, make_auth_client):
        provider = TokenProvider(lambda: make_auth_client(error=RuntimeError("invalid_grant: Token has been expired or revoked.")))

        with pytest.raises(AuthenticationError) as exc_info:
            await provider.get_access_token()

        assert str(exc_info.value) == "Authentication failed: invalid_grant: Token has been expired or revoked."
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_factory_failure_wrapped(self):
        def factory():
            raise ValueError("no credentials")

        provider = TokenProvider(factory)

        with pytest.raises(AuthenticationError, match="no credentials"):
            await provider.get_access_token()
        assert not provider.initialized


@pytest.mark.unit
class TestGoogleAuthClient:
    """Test refresh-if-needed behaviour over google-auth credentials."""

    @pytest.mark.asyncio
    async def test_valid_token_reused(self):
        creds = FakeCredentials()
        provider = TokenProvider(lambda: GoogleAuthClient(creds, strategy="oauth2"))

        first = await provider.get_access_token()
        second = await provider.get_access_token()
        third = await provider.get_access_token()

        assert first == second == third == "ya29.token-1"
        assert creds.refresh_calls == 1

    @pytest.mark.asyncio
    async def test_expired_token_refreshed(self):
        creds = FakeCredentials()
        provider = TokenProvider(lambda: GoogleAuthClient(creds, strategy="oauth2"))

        assert await provider.get_access_token() == "ya29.token-1"
        creds.expire()
        assert await provider.get_access_token() == "ya29.token-2"
        assert creds.refresh_calls == 2

    def test_existing_valid_token_not_refreshed(self):
        creds = FakeCredentials(token="ya29.preloaded", valid=True)
        client = GoogleAuthClient(creds, strategy="service_account")

        assert client.fetch_token() == "ya29.preloaded"
        assert creds.refresh_calls == 0
        assert client.strategy == "service_account"
