"""
Application settings.

Values come from environment variables prefixed with ``RIVR_`` (or a local
``.env`` file). Use ``get_settings()`` rather than instantiating ``Settings``
directly so the whole process shares one configuration.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    """Runtime configuration for the offline cache service."""

    model_config = SettingsConfigDict(env_prefix="RIVR_", env_file=".env", extra="ignore")

    app_name: str = "rivr-offline"
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Root directory for the cache database and blob files
    data_dir: Path = Path("data")

    # NOAA National Water Prediction Service
    forecast_base_url: str = "https://api.water.noaa.gov/nwps/v1"
    # Return-period gateway
    return_period_base_url: str = "https://nwm-api-updt-9f6idmxh.uc.gateway.dev"
    return_period_path: str = "/return-period"
    api_key: str = ""

    mapbox_access_token: str = ""
    mapbox_style_url: str = "mapbox://styles/mapbox/outdoors-v12"

    # Timeouts in seconds
    request_timeout: float = 15
    long_timeout: float = 30

    # Retries for idempotent requests (exponential backoff)
    http_max_retries: int = 4
    http_backoff_factor: float = 2.0

    max_cache_size_mb: int = 100
    default_cache_hours: float = 2
    connectivity_probe_url: str = "https://api.water.noaa.gov"

    user_id: str = "local"

    @property
    def database_path(self) -> Path:
        return self.data_dir / "rivr_cache.db"

    @property
    def blob_dir(self) -> Path:
        return self.data_dir / "blobs"

    def forecast_url(self, reach_id: str) -> str:
        return f"{self.forecast_base_url}/reaches/{reach_id}/streamflow"

    def reach_url(self, reach_id: str) -> str:
        return f"{self.forecast_base_url}/reaches/{reach_id}"

    def return_period_url(self, reach_id: str) -> str:
        """Return-period lookup URL, e.g. ``.../return-period?comids=15039097&key=...``."""
        return (
            f"{self.return_period_base_url}{self.return_period_path}"
            f"?comids={reach_id}&key={self.api_key}"
        )

    def validate_config(self) -> list[str]:
        """List configuration problems. An empty list means the config is usable."""
        problems: list[str] = []
        if not self.forecast_base_url:
            problems.append("RIVR_FORECAST_BASE_URL is not configured")
        if not self.mapbox_access_token:
            problems.append("RIVR_MAPBOX_ACCESS_TOKEN is not configured")
        return problems


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Configure root logging from settings (DEBUG when ``debug`` is set)."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
