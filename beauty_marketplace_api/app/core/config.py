"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for every field so the
API can start locally without any setup; in production override them
via the environment.  The maintenance scripts share the same settings
object and refuse to run when a value they require is empty.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Beauty Marketplace API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))

    # Long-lived token for the back office.  Requests carrying it are
    # treated as the first ADMIN account.
    admin_static_token: str = os.getenv("ADMIN_STATIC_TOKEN", "")

    # Shared secret expected in the ``x-agent-key`` header of the agent
    # booking endpoints.  Agent endpoints answer 503 while it is empty.
    agent_api_key: str = os.getenv("AGENT_API_KEY", "")

    # Path to the SQLite database file.  Relative paths are resolved
    # against the project root by ``core.db``.
    database_url: str = os.getenv("DATABASE_URL", "beauty_marketplace.db")

    # Base URL of a running API, used by the client and the scripts.
    api_base_url: str = os.getenv("API_BASE_URL", "http://localhost:8000/api/v1")

    nominatim_base_url: str = os.getenv("NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org")
    nominatim_user_agent: str = os.getenv("NOMINATIM_USER_AGENT", "KmerBeauty/1.0 (contact@kmerbeauty.com)")
    geocoding_country: str = os.getenv("GEOCODING_COUNTRY", "Cameroun")
    # Nominatim allows one request per second; keep a small margin.
    geocoding_min_interval: float = float(os.getenv("GEOCODING_MIN_INTERVAL", "1.1"))

    cleanup_batch_size: int = int(os.getenv("CLEANUP_BATCH_SIZE", "20"))
    nearby_default_radius_meters: int = int(os.getenv("NEARBY_DEFAULT_RADIUS_METERS", "30000"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables
# must be set before this module is imported.
settings = Settings()
