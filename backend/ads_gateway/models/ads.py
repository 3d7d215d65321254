import re
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class AdsSearchRequest(BaseModel):
    """Body of POST /api/ads/search."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    gaql: str = Field(..., min_length=1, description="Google Ads Query Language query")
    customer_id: Optional[str] = Field(
        None, alias="customerId", description="Target customer ID, dashes allowed"
    )
    page_size: int = Field(1000, alias="pageSize", ge=1)

    @field_validator("customer_id", mode="before")
    @classmethod
    def _digits_only(cls, value):
        if value is None:
            return None
        digits = re.sub(r"\D", "", str(value))
        return digits or None

    @field_validator("page_size", mode="before")
    @classmethod
    def _default_page_size(cls, value):
        # A falsy pageSize (0, null, "") means "use the default"
        return value or 1000


class UpstreamResponse(BaseModel):
    """Raw upstream reply, relayed to the caller without parsing the body."""
    status_code: int
    content_type: str = "application/json"
    body: bytes = b""


class HealthResponse(BaseModel):
    status: str = "healthy"
    timestamp: str
    version: str
    environment: str


class AuthTestResponse(BaseModel):
    authenticated: bool
    tokenReceived: bool
    message: str
    timestamp: str


class OAuthCallbackResponse(BaseModel):
    success: bool
    message: str
    refreshTokenReceived: bool = False
    timestamp: str
