"""
Forwards requests to the Google Ads REST API.

Responses are relayed as raw bytes so upstream formatting and error
payloads reach the caller exactly as Google sent them.
"""
import asyncio
import logging
from typing import Any, Dict, Optional
import httpx
from ads_gateway.config import Settings
from ads_gateway.models.ads import UpstreamResponse

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class AdsForwarder:
    """Builds Google Ads API requests and relays their responses."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            settings: Gateway settings (developer token, login customer ID, policy)
            transport: Optional httpx transport, used to stub the upstream in tests
        """
        self.settings = settings
        self.transport = transport

    @property
    def api_root(self) -> str:
        return f"{self.settings.ads_api_base_url.rstrip('/')}/{self.settings.ads_api_version}"

    def search_url(self, customer_id: str) -> str:
        return f"{self.api_root}/customers/{customer_id}/googleAds:search"

    def list_customers_url(self) -> str:
        return f"{self.api_root}/customers:listAccessibleCustomers"

    def build_headers(
        self,
        token: str,
        customer_id: Optional[str] = None,
        json_body: bool = False,
    ) -> Dict[str, str]:
        """
        Build upstream request headers.

        login-customer-id is only sent when acting on a customer other than
        the configured login (manager) account.
        """
        headers = {
            "Authorization": f"Bearer {token}",
            "developer-token": self.settings.gads_developer_token or "",
        }

        login_customer_id = self.settings.login_customer_id_digits
        if customer_id is not None and login_customer_id and customer_id != login_customer_id:
            headers["login-customer-id"] = login_customer_id

        if json_body:
            headers["Content-Type"] = "application/json"

        return headers

    def _client(self) -> httpx.AsyncClient:
        kwargs: Dict[str, Any] = {}
        if self.settings.upstream_timeout_seconds is not None:
            kwargs["timeout"] = self.settings.upstream_timeout_seconds
        if self.transport is not None:
            kwargs["transport"] = self.transport
        return httpx.AsyncClient(**kwargs)

    async def forward(
        self,
        method: str,
        url: str,
        token: str,
        customer_id: Optional[str] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> UpstreamResponse:
        """
        Send one request upstream and capture the raw reply.

        Non-2xx replies are returned, not raised. Transport errors are raised
        once the configured retry attempts are used up.

        Raises:
            httpx.HTTPError: On network failure
        """
        headers = self.build_headers(token, customer_id=customer_id, json_body=json is not None)
        attempts = max(0, self.settings.upstream_retry_attempts) + 1

        for attempt in range(1, attempts + 1):
            logger.info(f"Forwarding {method} {url} to Google Ads API (attempt {attempt}/{attempts})")
            try:
                async with self._client() as client:
                    response = await client.request(method, url, headers=headers, json=json)
            except httpx.TransportError as e:
                if attempt < attempts:
                    logger.warning(f"Google Ads API request failed: {e}. Retrying")
                    await self._backoff(attempt)
                    continue
                logger.error(f"Google Ads API request failed: {e}")
                raise

            logger.info(f"Google Ads API response: {response.status_code} {response.reason_phrase}")

            if response.status_code in RETRYABLE_STATUS_CODES and attempt < attempts:
                logger.warning(f"Retrying after upstream status {response.status_code}")
                await self._backoff(attempt)
                continue

            return UpstreamResponse(
                status_code=response.status_code,
                content_type=response.headers.get("content-type") or "application/json",
                body=response.content,
            )

    async def _backoff(self, attempt: int) -> None:
        await asyncio.sleep(self.settings.upstream_retry_backoff_seconds * attempt)

    async def search(
        self,
        token: str,
        customer_id: str,
        gaql: str,
        page_size: int = 1000,
    ) -> UpstreamResponse:
        """Run a GAQL query against googleAds:search for one customer."""
        return await self.forward(
            "POST",
            self.search_url(customer_id),
            token,
            customer_id=customer_id,
            json={"query": gaql, "pageSize": page_size},
        )

    async def list_accessible_customers(self, token: str) -> UpstreamResponse:
        """List customers the authenticated user can access directly."""
        return await self.forward("GET", self.list_customers_url(), token)
