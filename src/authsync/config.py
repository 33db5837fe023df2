"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

FIREBASE_JWKS_URL = (
    "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    PORT, DATABASE_URL and FIREBASE_PROJECT_ID have no defaults: constructing
    Settings without them raises a ValidationError, which aborts startup.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Required
    port: int
    database_url: str
    firebase_project_id: str

    # System Configuration
    api_v1_prefix: str = "/api/v1"
    debug: bool = False
    log_level: str = "INFO"
    db_echo: bool = False

    # Firebase token verification
    firebase_jwks_url: str = FIREBASE_JWKS_URL
    jwks_cache_ttl_seconds: int = 3600  # 1 hour
    jwt_leeway_seconds: int = 10  # Clock skew tolerance
    verify_timeout_seconds: float = 10.0

    # PostHog Configuration
    posthog_api_key: str | None = None
    posthog_host: str = "https://app.posthog.com"

    @property
    def firebase_issuer(self) -> str:
        """Expected `iss` claim of Firebase ID tokens for this project."""
        return f"https://securetoken.google.com/{self.firebase_project_id}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings()
