"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# This class uses pydantic-settings to read configuration from TWO
# sources (in priority order):
#
#   1. **Environment variables** - e.g., UNSPLASH_ACCESS_KEY=abc123
#      (highest priority - always wins)
#   2. **.env file** - key=value lines in the project root .env file
#      (lower priority - used for local development)
#
# The mapping is automatic: field name `ebird_api_key` maps to env var
# `EBIRD_API_KEY` (pydantic-settings uppercases and matches).
#
# Worker tuning knobs (batch size, retry budget, backoff) live in
# config/config.yaml instead; see src/config/loader.py.
#
# SECURITY: keep .env out of version control.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_IMAGE_PROVIDERS = ("wikipedia", "unsplash")


class Settings(BaseSettings):
    """Bird photo service settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Storage ===
    photo_cache_db_path: str = "data/photo_cache.db"
    sightings_db_path: str = "data/sightings.db"

    # === Image Provider ===
    # "wikipedia" (no key, no budget) or "unsplash" (key + hourly budget).
    image_provider: str = "wikipedia"
    wikipedia_api_base: str = "https://en.wikipedia.org/api/rest_v1"
    wikipedia_user_agent: str = "BirdPhotoCache/0.1 (https://github.com/birdphotos/bird-photo-cache)"

    # Empty string = "not configured" → main.py falls back to Wikipedia.
    unsplash_access_key: str = ""
    unsplash_rate_limit: int = 50
    unsplash_rate_window_hours: int = 1
    unsplash_placeholder_url: str = ""

    # === Observation Feed / Geocoding ===
    ebird_api_key: str = ""
    ebird_api_base: str = "https://api.ebird.org/v2"
    nominatim_base_url: str = "https://nominatim.openstreetmap.org"
    observation_cache_ttl: int = 900

    # === Background Worker ===
    scheduler_enabled: bool = True

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_image_provider_name(self) -> str:
        """Return the image provider to use, honouring missing credentials.

        Unknown names and ``unsplash`` without an access key both resolve
        to ``wikipedia``.
        """
        name = self.image_provider.strip().lower()
        if name not in SUPPORTED_IMAGE_PROVIDERS:
            return "wikipedia"
        if name == "unsplash" and not self.unsplash_access_key:
            return "wikipedia"
        return name
