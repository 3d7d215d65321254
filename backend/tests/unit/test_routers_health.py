"""
Unit tests for the health endpoint.
"""
import pytest
from fastapi.testclient import TestClient
from ads_gateway.main import create_app
from ads_gateway.services.token_provider import TokenProvider


@pytest.mark.unit
class TestHealth:
    """Test GET /api/health."""

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["environment"] == "test"
        assert data["timestamp"].endswith("Z")

    def test_health_with_broken_auth(self, settings, upstream):
        """Test health never touches the credential path."""
        calls = []

        def broken_factory():
            calls.append(1)
            raise RuntimeError("credentials are broken")

        app = create_app(settings, token_provider=TokenProvider(broken_factory), transport=upstream.transport)
        with TestClient(app) as c:
            response = c.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert calls == []

    def test_health_has_no_ads_cors_override(self, client):
        """Test the ads-specific CORS headers are not forced onto /api/health."""
        response = client.get("/api/health")

        assert "access-control-allow-origin" not in response.headers

    def test_health_cors_for_allowed_origin(self, client):
        response = client.get("/api/health", headers={"Origin": "http://localhost:3000"})

        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
