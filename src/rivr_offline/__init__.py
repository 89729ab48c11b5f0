"""Rivr offline - river-flow forecast caching and sync service.

Architecture::

    datasources/   External APIs (NOAA NWM forecasts + return periods, Mapbox tiles)
    network/       HTTP plumbing (connectivity, response cache, API client)
    storage/       SQLite cache database, TTL key-value cache, offline repository
    store.py       Guarded on-disk blob store (tiles, cached files)
    repositories/  Network/cache fallback policy (forecasts, return periods, favorites)
    offline/       Offline manager state + Mapbox region downloads
    flows/         Prefect orchestration (sync favorites, enforce cache budget)
    services/      Shared utilities (HTTP session with retry)

Data flow: datasources -> repositories -> storage (cache) -> callers

Extension points:
  - New data source:   datasources/__init__.py
  - New cache table:   storage/database.py (bump SCHEMA_VERSION)
"""

__version__ = "0.1.0"
__author__ = "BYU Hydroinformatics Lab"

from rivr_offline.config import Settings, get_settings
from rivr_offline.schemas import FlowUnit, ForecastType

__all__ = ["FlowUnit", "ForecastType", "Settings", "__version__", "get_settings"]
