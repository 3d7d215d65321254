"""
Async client for the gateway's HTTP API.

Used by scripts and other Python consumers the same way the dashboard
uses the gateway: health check, auth test, GAQL search and the common
report queries built on top of it.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional
import httpx
from ads_gateway.errors import utc_timestamp

logger = logging.getLogger(__name__)


class GatewayApiError(Exception):
    """Request to the gateway failed."""

    def __init__(self, message: str, status: int = 0, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details or {}
        self.timestamp = utc_timestamp()

    def __str__(self) -> str:
        suggestion = self.details.get("suggestion")
        text = f"GatewayApiError: {self.message} (Status: {self.status})"
        return f"{text}\nSuggestion: {suggestion}" if suggestion else text


class AdsGatewayClient:
    """Client for /api/health, /api/ads/test-auth, /api/ads/search and /api/ads/customers."""

    def __init__(
        self,
        base_url: str = "http://localhost:3001/api",
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.transport = transport

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout or self.timeout,
            transport=self.transport,
            headers={"Content-Type": "application/json"},
        )

    @staticmethod
    def _decode(response: httpx.Response) -> Dict[str, Any]:
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError:
            return {"rawResponse": response.text}
        return data if isinstance(data, dict) else {"data": data}

    async def _request(self, method: str, endpoint: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send a request, retrying 5xx replies and network errors.

        Raises:
            GatewayApiError: On a non-2xx reply or when retries run out
        """
        url = f"{self.base_url}{endpoint}"

        for attempt in range(self.max_retries + 1):
            logger.debug(f"Gateway request (attempt {attempt + 1}): {method} {url}")
            try:
                async with self._client() as client:
                    response = await client.request(method, url, json=json)
            except httpx.TimeoutException as e:
                raise GatewayApiError(
                    "Request timeout - server may be down",
                    408,
                    {"timeout": self.timeout, "suggestion": "Check if the gateway is running"},
                ) from e
            except httpx.TransportError as e:
                if attempt < self.max_retries:
                    logger.warning(f"Retrying after network error ({attempt + 1}/{self.max_retries})")
                    await asyncio.sleep(self.retry_delay * (attempt + 1))
                    continue
                raise GatewayApiError(
                    "Network error - unable to reach server",
                    0,
                    {
                        "originalError": str(e),
                        "suggestion": "Check server status and network connection",
                        "serverURL": self.base_url,
                    },
                ) from e

            data = self._decode(response)
            if response.is_success:
                return data

            if response.status_code >= 500 and attempt < self.max_retries:
                logger.warning(f"Retrying after status {response.status_code} ({attempt + 1}/{self.max_retries})")
                await asyncio.sleep(self.retry_delay * (attempt + 1))
                continue

            error = data.get("error")
            message = error if isinstance(error, str) else f"Request failed with status {response.status_code}"
            raise GatewayApiError(message, response.status_code, data)

    async def health_check(self) -> Dict[str, Any]:
        """Fetch /health with a short timeout."""
        try:
            async with self._client(timeout=5.0) as client:
                response = await client.get(f"{self.base_url}/health")
        except httpx.HTTPError as e:
            raise GatewayApiError(
                "Server health check failed",
                0,
                {"originalError": str(e), "serverURL": self.base_url},
            ) from e

        if not response.is_success:
            raise GatewayApiError(
                "Server health check failed",
                503,
                {"originalError": f"Server unhealthy: {response.status_code}", "serverURL": self.base_url},
            )
        return self._decode(response)

    async def test_connection(self) -> Dict[str, Any]:
        """Check gateway reachability and credentials. Never raises."""
        try:
            await self.health_check()
            data = await self._request("GET", "/ads/test-auth")
            return {
                "connected": True,
                "authenticated": bool(data.get("authenticated")),
                "message": data.get("message", "Connection test successful"),
                "timestamp": data.get("timestamp"),
                "serverURL": self.base_url,
            }
        except GatewayApiError as e:
            logger.error(f"Connection test failed: {e.message}")
            return {
                "connected": False,
                "authenticated": False,
                "error": e.message,
                "details": e.details,
                "suggestion": e.details.get("suggestion"),
                "timestamp": utc_timestamp(),
                "serverURL": self.base_url,
            }

    async def search(self, gaql: str, customer_id: Optional[str] = None, page_size: int = 1000) -> Dict[str, Any]:
        """Execute a GAQL query through the gateway."""
        if not gaql:
            raise GatewayApiError("GAQL query is required", 400)

        body: Dict[str, Any] = {"gaql": gaql, "pageSize": page_size}
        if customer_id:
            body["customerId"] = customer_id
        return await self._request("POST", "/ads/search", json=body)

    async def get_accessible_customers(self) -> Dict[str, Any]:
        data = await self._request("GET", "/ads/customers")
        logger.info(f"Found {len(data.get('resourceNames', []))} accessible customers")
        return data

    async def get_client_accounts(self, manager_customer_id: Optional[str] = None) -> Dict[str, Any]:
        """List client accounts under a manager account."""
        gaql = """
            SELECT
                customer_client.client_customer,
                customer_client.descriptive_name,
                customer_client.level,
                customer_client.currency_code,
                customer_client.time_zone,
                customer_client.status,
                customer_client.hidden
            FROM customer_client
            WHERE customer_client.hidden = FALSE
            ORDER BY customer_client.descriptive_name
        """
        return await self.search(gaql, manager_customer_id)

    async def get_campaign_performance(
        self,
        customer_id: str,
        date_range: str = "LAST_30_DAYS",
        limit: int = 100,
    ) -> Dict[str, Any]:
        gaql = f"""
            SELECT
                campaign.id,
                campaign.name,
                campaign.status,
                campaign.advertising_channel_type,
                metrics.impressions,
                metrics.clicks,
                metrics.ctr,
                metrics.cost_micros,
                metrics.conversions,
                metrics.conversions_value,
                metrics.average_cpc,
                segments.date
            FROM campaign
            WHERE segments.date DURING {date_range}
            AND campaign.status IN ('ENABLED', 'PAUSED')
            ORDER BY metrics.cost_micros DESC
            LIMIT {limit}
        """
        return await self.search(gaql, customer_id)

    async def get_keyword_performance(
        self,
        customer_id: str,
        campaign_id: Optional[str] = None,
        date_range: str = "LAST_30_DAYS",
        limit: int = 500,
    ) -> Dict[str, Any]:
        campaign_filter = f"AND campaign.id = {campaign_id}" if campaign_id else ""
        gaql = f"""
            SELECT
                campaign.id,
                campaign.name,
                ad_group.id,
                ad_group.name,
                ad_group_criterion.keyword.text,
                ad_group_criterion.keyword.match_type,
                metrics.impressions,
                metrics.clicks,
                metrics.ctr,
                metrics.cost_micros,
                metrics.conversions,
                metrics.average_cpc,
                segments.date
            FROM keyword_view
            WHERE segments.date DURING {date_range}
            {campaign_filter}
            AND ad_group_criterion.status = 'ENABLED'
            ORDER BY metrics.impressions DESC
            LIMIT {limit}
        """
        return await self.search(gaql, customer_id)

    async def get_audience_insights(
        self,
        customer_id: str,
        date_range: str = "LAST_30_DAYS",
        limit: int = 300,
    ) -> Dict[str, Any]:
        gaql = f"""
            SELECT
                campaign.id,
                campaign.name,
                segments.ad_network_type,
                segments.device,
                ad_group_criterion.age_range.type,
                ad_group_criterion.gender.type,
                metrics.impressions,
                metrics.clicks,
                metrics.ctr,
                metrics.cost_micros,
                metrics.conversions,
                segments.date
            FROM demographic_view
            WHERE segments.date DURING {date_range}
            ORDER BY metrics.impressions DESC
            LIMIT {limit}
        """
        return await self.search(gaql, customer_id)

    async def batch_search(
        self,
        queries: List[Dict[str, Any]],
        customer_id: Optional[str] = None,
        delay: float = 0.1,
    ) -> Dict[str, Any]:
        """
        Run several queries one after another.

        Each query is ``{"gaql": ..., "customerId": ...?}``. A failing query
        is recorded in the results and does not stop the batch.
        """
        results = []

        for index, query in enumerate(queries):
            gaql = query.get("gaql")
            try:
                data = await self.search(gaql, query.get("customerId") or customer_id)
                results.append({
                    "index": index,
                    "query": gaql,
                    "success": True,
                    "data": data,
                    "timestamp": utc_timestamp(),
                })
            except GatewayApiError as e:
                logger.error(f"Batch query {index + 1} failed: {e.message}")
                results.append({
                    "index": index,
                    "query": gaql,
                    "success": False,
                    "error": e.message,
                    "details": e.details,
                    "timestamp": utc_timestamp(),
                })

            if index < len(queries) - 1 and delay:
                await asyncio.sleep(delay)

        successful = sum(1 for r in results if r["success"])
        logger.info(f"Batch execution complete: {successful}/{len(queries)} successful")

        return {
            "total": len(queries),
            "successful": successful,
            "failed": len(queries) - successful,
            "results": results,
        }


def format_currency(micros, currency: str = "USD") -> str:
    """Format a cost_micros value, e.g. 1234560000 -> '$1,234.56'."""
    try:
        amount = int(micros) / 1_000_000
    except (TypeError, ValueError):
        amount = 0.0
    symbol = "$" if currency == "USD" else f"{currency} "
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_percentage(value, decimals: int = 2) -> str:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = 0.0
    return f"{number:.{decimals}f}%"


def format_number(number) -> str:
    try:
        return f"{int(float(number)):,}"
    except (TypeError, ValueError):
        return "0"
