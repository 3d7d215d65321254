"""
Credential resolution.

Picks exactly one credential strategy from the environment and turns it
into an AuthClient. Runs once per process, before any traffic is served.
"""
import json
import logging
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import credentials as oauth2_credentials
from google.oauth2 import service_account
from ads_gateway.config import Settings
from ads_gateway.errors import ConfigurationError
from ads_gateway.models.credentials import (
    CredentialConfig,
    OAuth2Credentials,
    ServiceAccountCredentials,
)
from ads_gateway.services.auth_client import AuthClient, GoogleAuthClient

logger = logging.getLogger(__name__)

ADWORDS_SCOPE = "https://www.googleapis.com/auth/adwords"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


def resolve_credential_config(settings: Settings) -> CredentialConfig:
    """
    Select the credential strategy from settings.

    Priority: service account JSON first, then OAuth2 client ID, secret and
    refresh token.

    Raises:
        ConfigurationError: If the service account JSON is malformed or no
            strategy is fully configured
    """
    if settings.service_account_json:
        try:
            info = json.loads(settings.service_account_json)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"SERVICE_ACCOUNT_JSON is not valid JSON: {e}") from e

        if not isinstance(info, dict):
            raise ConfigurationError("SERVICE_ACCOUNT_JSON must be a JSON object")

        return ServiceAccountCredentials(info=info)

    if settings.google_client_id and settings.google_client_secret and settings.google_refresh_token:
        return OAuth2Credentials(
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            refresh_token=settings.google_refresh_token,
            redirect_uri=settings.google_oauth_redirect_uri,
        )

    raise ConfigurationError(
        "No authentication method configured. Please provide either "
        "SERVICE_ACCOUNT_JSON or OAuth2 credentials "
        "(GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REFRESH_TOKEN)."
    )


def build_auth_client(config: CredentialConfig) -> AuthClient:
    """
    Construct the AuthClient for a resolved credential config.

    No network call is made here; the first token is fetched lazily.
    """
    if isinstance(config, ServiceAccountCredentials):
        logger.info("Initializing Google auth with service account")
        try:
            creds = service_account.Credentials.from_service_account_info(
                config.info,
                scopes=[ADWORDS_SCOPE],
            )
        except (ValueError, GoogleAuthError) as e:
            raise ConfigurationError(f"Invalid service account credentials: {e}") from e

        logger.info(f"Service account authentication initialized ({creds.service_account_email})")
        return GoogleAuthClient(creds, strategy="service_account")

    logger.info("Initializing Google auth with OAuth2 refresh token")
    creds = oauth2_credentials.Credentials(
        token=None,
        refresh_token=config.refresh_token,
        token_uri=GOOGLE_TOKEN_URI,
        client_id=config.client_id,
        client_secret=config.client_secret,
    )
    logger.info("OAuth2 authentication initialized")
    return GoogleAuthClient(creds, strategy="oauth2")


def load_auth_client(settings: Settings) -> AuthClient:
    """Resolve the credential strategy from settings and build its client."""
    return build_auth_client(resolve_credential_config(settings))
