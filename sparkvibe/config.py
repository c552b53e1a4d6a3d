"""Configuration management using Pydantic Settings."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


PRODUCTION_API_URL = "https://backend-sv-3n4v6.ondigitalocean.app"
PRODUCTION_HOSTS = {"sparkvibe.app", "www.sparkvibe.app"}
LOCAL_API_URL = "http://localhost:5000"


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SPARKVIBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App Config
    environment: str = "development"
    debug: bool = False
    api_url: Optional[str] = None
    app_hostname: str = "localhost"

    # Transport
    request_timeout: float = 10.0  # Base timeout in seconds
    max_timeout: float = 30.0

    # Rate-limited queue
    use_request_queue: bool = True
    min_request_interval: float = 0.1  # Seconds between request starts
    queue_cooldown: float = 0.05

    # Retries
    get_retries: int = 2
    post_retries: int = 0
    retry_base_delay: float = 0.5
    retry_max_delay: float = 4.0

    # Connection health
    max_backoff_multiplier: float = 3.0
    unhealthy_failure_threshold: int = 3

    # Cache TTLs (seconds)
    default_cache_ttl: float = 30.0
    health_cache_ttl: float = 15.0
    leaderboard_cache_ttl: float = 15.0
    trending_cache_ttl: float = 300.0
    profile_cache_ttl: float = 60.0

    # Offline behaviour
    demo_mode_enabled: bool = False  # Allow synthesized sign-in when offline
    storage_path: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def base_url(self) -> str:
        """Backend base URL for this environment."""
        return resolve_api_url(self)


def resolve_api_url(settings: Settings) -> str:
    """
    Resolve the backend URL the client should talk to.

    Deployed hosts always use the production backend. Otherwise an explicit
    ``api_url`` wins, then a Codespaces-style ``-5173`` host is mapped to its
    ``-5000`` sibling, and finally the local development server.
    """
    hostname = (settings.app_hostname or "").lower()

    if hostname in PRODUCTION_HOSTS or hostname.endswith("ondigitalocean.app"):
        return PRODUCTION_API_URL

    if settings.api_url:
        return settings.api_url.rstrip("/")

    if "app.github.dev" in hostname:
        return f"https://{hostname.replace('-5173', '-5000')}"

    return LOCAL_API_URL


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
