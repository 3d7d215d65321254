import re
from typing import List, Optional
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Gateway configuration using Pydantic Settings.
    Environment variables are loaded from .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Google Ads API Configuration (required)
    gads_developer_token: Optional[str] = None
    login_customer_id: Optional[str] = None

    # Credential strategy A: service account key as a JSON string
    service_account_json: Optional[str] = None

    # Credential strategy B: OAuth2 client with a stored refresh token
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_refresh_token: Optional[str] = None
    google_oauth_redirect_uri: Optional[str] = None

    # API Configuration
    host: str = "0.0.0.0"
    port: int = 3001
    frontend_url: str = "http://localhost:3000"
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("NODE_ENV", "APP_ENV", "environment"),
    )
    log_level: str = "INFO"

    # Upstream
    ads_api_base_url: str = "https://googleads.googleapis.com"
    ads_api_version: str = "v21"
    upstream_timeout_seconds: Optional[float] = None  # None = httpx default
    upstream_retry_attempts: int = 0
    upstream_retry_backoff_seconds: float = 1.0

    # Edge policy
    rate_limit_max_requests: int = 100
    rate_limit_window_minutes: int = 15
    max_body_bytes: int = 10 * 1024 * 1024

    @property
    def login_customer_id_digits(self) -> str:
        """Configured login customer ID with dashes and other non-digits removed."""
        return re.sub(r"\D", "", self.login_customer_id or "")

    @property
    def cors_origins_list(self) -> List[str]:
        return [self.frontend_url]

    def missing_required(self) -> List[str]:
        """Return the names of required environment variables that are unset."""
        required = {
            "GADS_DEVELOPER_TOKEN": self.gads_developer_token,
            "LOGIN_CUSTOMER_ID": self.login_customer_id,
        }
        return [name for name, value in required.items() if not value]


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()
