"""
Shared fixtures for all tests.
"""
import json
import pytest
import httpx
from fastapi.testclient import TestClient
from ads_gateway.config import Settings
from ads_gateway.main import create_app
from ads_gateway.services.auth_client import AuthClient
from ads_gateway.services.token_provider import TokenProvider

GATEWAY_ENV_VARS = [
    "GADS_DEVELOPER_TOKEN",
    "LOGIN_CUSTOMER_ID",
    "SERVICE_ACCOUNT_JSON",
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GOOGLE_REFRESH_TOKEN",
    "GOOGLE_OAUTH_REDIRECT_URI",
    "FRONTEND_URL",
    "PORT",
    "NODE_ENV",
    "APP_ENV",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep the developer's environment and .env file out of every test."""
    for name in GATEWAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class FakeAuthClient(AuthClient):
    """Deterministic AuthClient: returns ``token`` or raises ``error``."""

    def __init__(self, token="ya29.test-access-token", error=None, strategy="fake"):
        self.token = token
        self.error = error
        self._strategy = strategy
        self.calls = 0

    @property
    def strategy(self) -> str:
        return self._strategy

    def fetch_token(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.token


class UpstreamStub:
    """Stub Google endpoint: replies with a canned response and records requests."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.body = b'{"results":[]}'
        self.content_type = "application/json; charset=UTF-8"
        self.error = None

    def reply(self, status_code, body, content_type="application/json; charset=UTF-8"):
        self.status_code = status_code
        self.body = body.encode() if isinstance(body, str) else body
        self.content_type = content_type

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error:
            raise self.error
        return httpx.Response(
            self.status_code,
            content=self.body,
            headers={"content-type": self.content_type},
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last_request.content)


@pytest.fixture
def settings():
    """Settings with OAuth2 credentials configured."""
    return Settings(
        _env_file=None,
        gads_developer_token="dev-token-123",
        login_customer_id="123-456-7890",
        google_client_id="client-id.apps.googleusercontent.com",
        google_client_secret="client-secret",
        google_refresh_token="1//refresh-token",
        google_oauth_redirect_uri="http://localhost:3001/api/oauth/callback",
        frontend_url="http://localhost:3000",
        environment="test",
    )


@pytest.fixture
def make_auth_client():
    """Factory fixture for FakeAuthClient instances."""
    def _make(**kwargs):
        return FakeAuthClient(**kwargs)
    return _make


@pytest.fixture
def auth_client(make_auth_client):
    return make_auth_client()


@pytest.fixture
def token_provider(auth_client):
    return TokenProvider(lambda: auth_client)


@pytest.fixture
def upstream():
    return UpstreamStub()


@pytest.fixture
def app(settings, token_provider, upstream):
    return create_app(settings, token_provider=token_provider, transport=upstream.transport)


@pytest.fixture
def client(app):
    """FastAPI test client wired to the stub upstream and fake credentials."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def search_body():
    return {"gaql": "SELECT campaign.id FROM campaign", "customerId": "1234567890"}
