"""
Google Ads proxy endpoints.

The browser cannot call the Google Ads API directly (CORS, and the
developer token must stay server-side), so these routes attach
credentials and relay the upstream reply unchanged.
"""
import json
import logging
from typing import Any, Dict
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError
from ads_gateway.config import Settings
from ads_gateway.deps import get_app_settings, get_forwarder, get_token_provider
from ads_gateway.errors import (
    AuthenticationError,
    PayloadTooLarge,
    RequestValidationFailed,
    error_envelope,
    utc_timestamp,
)
from ads_gateway.middleware import payload_too_large
from ads_gateway.models.ads import AdsSearchRequest, AuthTestResponse, UpstreamResponse
from ads_gateway.services.forwarder import AdsForwarder
from ads_gateway.services.token_provider import TokenProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ads", tags=["ads"])


def _relay(upstream: UpstreamResponse) -> Response:
    return Response(
        content=upstream.body,
        status_code=upstream.status_code,
        media_type=upstream.content_type,
    )


async def _read_json_body(request: Request, max_bytes: int) -> Dict[str, Any]:
    """
    Parse the request body as a JSON object; anything else counts as empty.

    Raises:
        PayloadTooLarge: The body read exceeds ``max_bytes`` (a chunked
            upload carries no Content-Length for the middleware to check)
    """
    raw = await request.body()
    if len(raw) > max_bytes:
        raise PayloadTooLarge(f"Request body exceeds {max_bytes} bytes")
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
    except (ValueError, RecursionError):
        return {}
    return payload if isinstance(payload, dict) else {}


def parse_search_request(payload: Dict[str, Any], settings: Settings) -> AdsSearchRequest:
    """
    Validate a search body and fill in the effective customer ID.

    Raises:
        RequestValidationFailed: Missing gaql, malformed fields, or no
            customer ID from either the body or LOGIN_CUSTOMER_ID
    """
    if not payload.get("gaql"):
        raise RequestValidationFailed(
            "Missing GAQL query",
            'Request body must include "gaql" field with the Google Ads Query Language query',
        )

    try:
        search = AdsSearchRequest.model_validate(payload)
    except ValidationError as e:
        raise RequestValidationFailed("Invalid request body", str(e)) from e

    if not search.customer_id:
        search.customer_id = settings.login_customer_id_digits or None

    if not search.customer_id:
        raise RequestValidationFailed(
            "No customer ID provided",
            "Please provide customerId in request body or configure LOGIN_CUSTOMER_ID environment variable",
        )

    return search


@router.post("/search")
async def search(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    token_provider: TokenProvider = Depends(get_token_provider),
    forwarder: AdsForwarder = Depends(get_forwarder),
):
    """
    Execute a GAQL query for a customer.

    Body: ``{gaql, customerId?, pageSize?}``. The upstream status and body
    are relayed as-is.
    """
    try:
        payload = await _read_json_body(request, settings.max_body_bytes)
    except PayloadTooLarge:
        return payload_too_large(settings.max_body_bytes)

    try:
        search_request = parse_search_request(payload, settings)
    except RequestValidationFailed as e:
        return JSONResponse(status_code=400, content={"error": e.error, "details": e.details})

    try:
        logger.info(f"Executing GAQL query for customer {search_request.customer_id}")
        access_token = await token_provider.get_access_token()
        upstream = await forwarder.search(
            access_token,
            search_request.customer_id,
            search_request.gaql,
            search_request.page_size,
        )
        return _relay(upstream)

    except Exception as e:
        logger.error(f"Search proxy error: {e}")
        return JSONResponse(
            status_code=500,
            content=error_envelope(
                "Internal server error",
                message="Failed to execute Google Ads search request",
                details=str(e),
            ),
        )


@router.get("/customers")
async def list_customers(
    token_provider: TokenProvider = Depends(get_token_provider),
    forwarder: AdsForwarder = Depends(get_forwarder),
):
    """List customer accounts accessible with the configured credentials."""
    try:
        logger.info("Fetching accessible customers")
        access_token = await token_provider.get_access_token()
        upstream = await forwarder.list_accessible_customers(access_token)
        return _relay(upstream)

    except Exception as e:
        logger.error(f"Customers endpoint error: {e}")
        return JSONResponse(
            status_code=500,
            content=error_envelope(
                "Failed to fetch customers",
                message="Failed to list accessible Google Ads customers",
                details=str(e),
            ),
        )


@router.get("/test-auth", response_model=AuthTestResponse)
async def test_auth(token_provider: TokenProvider = Depends(get_token_provider)):
    """Check that an access token can be obtained. Never calls the Ads API."""
    try:
        logger.info("Testing authentication")
        access_token = await token_provider.get_access_token()
    except AuthenticationError as e:
        logger.error(f"Auth test failed: {e}")
        return JSONResponse(
            status_code=401,
            content={
                "authenticated": False,
                "error": str(e),
                "timestamp": utc_timestamp(),
            },
        )

    return AuthTestResponse(
        authenticated=True,
        tokenReceived=bool(access_token),
        message="Authentication successful",
        timestamp=utc_timestamp(),
    )
