from typing import Annotated, Any, Dict, Literal, Optional, Union
from pydantic import BaseModel, Field


class ServiceAccountCredentials(BaseModel):
    """Service account key loaded from SERVICE_ACCOUNT_JSON."""
    kind: Literal["service_account"] = "service_account"
    info: Dict[str, Any] = Field(..., repr=False, description="Parsed service account key file")


class OAuth2Credentials(BaseModel):
    """OAuth2 client credentials with a stored refresh token."""
    kind: Literal["oauth2"] = "oauth2"
    client_id: str = Field(..., description="OAuth2 client ID")
    client_secret: str = Field(..., repr=False, description="OAuth2 client secret")
    refresh_token: str = Field(..., repr=False, description="OAuth2 refresh token")
    redirect_uri: Optional[str] = Field(None, description="Redirect URI registered for the client")


CredentialConfig = Annotated[
    Union[ServiceAccountCredentials, OAuth2Credentials],
    Field(discriminator="kind"),
]
