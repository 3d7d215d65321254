"""
Error types raised by the gateway.

Per-request errors are caught at the route boundary and turned into the
JSON envelope built by ``error_envelope``; ``ConfigurationError`` only
ever occurs during startup.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class ConfigurationError(Exception):
    """Missing environment variables or no usable credential strategy."""


class AuthenticationError(Exception):
    """An access token could not be obtained."""


class PayloadTooLarge(Exception):
    """Request body larger than the configured limit. Maps to HTTP 413."""


class RequestValidationFailed(Exception):
    """Required input missing or malformed. Maps to HTTP 400."""

    def __init__(self, error: str, details: str):
        super().__init__(error)
        self.error = error
        self.details = details


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def error_envelope(
    error: str,
    message: Optional[str] = None,
    details: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the ``{error, message?, details?, timestamp}`` response body."""
    body: Dict[str, Any] = {"error": error}
    if message is not None:
        body["message"] = message
    if details is not None:
        body["details"] = details
    body["timestamp"] = utc_timestamp()
    return body
