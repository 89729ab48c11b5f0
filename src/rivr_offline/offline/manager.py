"""
Offline manager.

One object owning the user-facing offline state: whether offline mode is on,
what is cached, and the progress of a map region download. Interested
parties register a listener and are called (with the manager) on every
state change.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from rivr_offline.clock import Clock, system_clock
from rivr_offline.errors import AppError

if TYPE_CHECKING:
    from rivr_offline.network.api_client import ApiClient
    from rivr_offline.offline.tiles import MapboxOfflineService, RegionDownloadResult
    from rivr_offline.schemas import BoundingBox, MapStation
    from rivr_offline.storage.cache import CacheService

logger = logging.getLogger(__name__)

STATION_PREFIX = "station_"
FORECAST_PREFIX = "forecast_"
STATION_TTL = timedelta(days=30)
DEFAULT_FORECAST_HOURS = 24


class OfflineStatus(StrEnum):
    INITIAL = "initial"
    LOADING = "loading"
    READY = "ready"
    DOWNLOADING = "downloading"
    ERROR = "error"


@dataclass
class OfflineStats:
    station_count: int = 0
    forecast_count: int = 0
    tile_count: int = 0
    size_bytes: int = 0

    @property
    def size_mb(self) -> int:
        return -(-self.size_bytes // (1024 * 1024))


Listener = Callable[["OfflineManager"], None]


class OfflineManager:
    """Coordinates offline mode, cached stations/forecasts and region downloads."""

    def __init__(
        self,
        cache: CacheService,
        api: ApiClient,
        tiles: MapboxOfflineService,
        clock: Clock = system_clock,
    ) -> None:
        self.cache = cache
        self.api = api
        self.tiles = tiles
        self.clock = clock

        self.status = OfflineStatus.INITIAL
        self.error_message: str | None = None
        self.offline_mode = False
        self.download_progress = 0.0
        self.current_download_name: str | None = None
        self.stats = OfflineStats()

        self._listeners: list[Listener] = []
        self._cancel = threading.Event()

    # -------------------------------------------------------------------------
    # Lifecycle / listeners
    # -------------------------------------------------------------------------

    def initialize(self) -> None:
        self._set_status(OfflineStatus.LOADING)
        try:
            self.refresh_cache_stats()
        except AppError as e:
            self._set_error(f"Failed to initialize offline manager: {e.message}")
            return
        self._set_status(OfflineStatus.READY)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _set_status(self, status: OfflineStatus) -> None:
        if self.status is status:
            return
        self.status = status
        self._notify()

    def _set_error(self, message: str) -> None:
        logger.error(message)
        self.error_message = message
        self.status = OfflineStatus.ERROR
        self._notify()

    def clear_error(self) -> None:
        self.error_message = None
        if self.status is OfflineStatus.ERROR:
            self.status = OfflineStatus.READY
        self._notify()

    @property
    def is_downloading(self) -> bool:
        return self.status is OfflineStatus.DOWNLOADING

    # -------------------------------------------------------------------------
    # Offline mode
    # -------------------------------------------------------------------------

    def set_offline_mode(self, enabled: bool) -> None:
        if self.offline_mode == enabled:
            return
        self.offline_mode = enabled
        self.api.set_offline_mode(enabled)
        self._notify()

    # -------------------------------------------------------------------------
    # Stations / forecasts
    # -------------------------------------------------------------------------

    def cache_station(self, station: MapStation, api_data: dict[str, Any] | None) -> bool:
        """Cache a station for 30 days. Skipped (returns False) without API data."""
        if api_data is None:
            return False
        self.cache.set(
            f"{STATION_PREFIX}{station.station_id}",
            {
                "station": station.model_dump(),
                "api_data": api_data,
                "cached_at": self.clock(),
            },
            ttl=STATION_TTL,
        )
        self.refresh_cache_stats()
        return True

    def get_cached_station(self, station_id: int) -> dict[str, Any] | None:
        return self.cache.get(f"{STATION_PREFIX}{station_id}")

    def cache_forecast(
        self, station_id: int | str, forecast_data: dict[str, Any], expiry_hours: float | None = None
    ) -> None:
        hours = expiry_hours if expiry_hours is not None else DEFAULT_FORECAST_HOURS
        self.cache.set(
            f"{FORECAST_PREFIX}{station_id}",
            {"data": forecast_data, "cached_at": self.clock()},
            ttl=timedelta(hours=hours),
        )
        self.refresh_cache_stats()

    def get_cached_forecast(self, station_id: int | str, *, ignore_expiry: bool = False) -> dict[str, Any] | None:
        """Cached forecast; with ``ignore_expiry`` an expired one is still returned."""
        entry = self.cache.get_entry(f"{FORECAST_PREFIX}{station_id}", ignore_expiry=ignore_expiry)
        return entry.value if entry else None

    # -------------------------------------------------------------------------
    # Map regions
    # -------------------------------------------------------------------------

    def download_region(
        self,
        bounds: BoundingBox,
        min_zoom: int,
        max_zoom: int,
        name: str,
        style_url: str | None = None,
    ) -> RegionDownloadResult | None:
        """Download a map region. Returns None if a download is already running."""
        if self.is_downloading:
            logger.warning("Region download already in progress: %s", self.current_download_name)
            return None

        self._cancel.clear()
        self.current_download_name = name
        self.download_progress = 0.0
        self._set_status(OfflineStatus.DOWNLOADING)

        completed = False
        try:
            result = self.tiles.download_region(
                bounds,
                min_zoom,
                max_zoom,
                style_url=style_url,
                name=name,
                on_progress=self._on_progress,
                should_cancel=self._cancel.is_set,
            )
            completed = True
        except (AppError, ValueError) as e:
            self._set_error(f"Failed to download region: {e}")
            return None
        finally:
            self.current_download_name = None
            if not completed and self.is_downloading:
                # anything else (e.g. disk full) propagates
                self._set_error("Region download aborted")

        if result.cancelled:
            self.download_progress = 0.0
        self.status = OfflineStatus.READY
        self.refresh_cache_stats()
        self._notify()
        return result

    def cancel_download(self) -> None:
        if self.is_downloading:
            self._cancel.set()

    def _on_progress(self, done: int, total: int) -> None:
        self.download_progress = done / total if total else 1.0
        self._notify()

    # -------------------------------------------------------------------------
    # Cache maintenance
    # -------------------------------------------------------------------------

    def clear_all_cache(self) -> None:
        self.cache.clear_all()
        self.tiles.repository.clear_all_cache()
        self.refresh_cache_stats()

    def clear_cache_by_type(self, cache_type: str) -> None:
        """Clear ``stations``, ``forecasts``, ``map_tiles`` or ``all``."""
        if cache_type == "stations":
            self.cache.remove_prefix(STATION_PREFIX)
        elif cache_type == "forecasts":
            self.cache.remove_prefix(FORECAST_PREFIX)
        elif cache_type == "map_tiles":
            self.tiles.repository.clear_cache_by_type("map_tiles")
        elif cache_type == "all":
            self.clear_all_cache()
            return
        else:
            msg = f"Unknown cache type: {cache_type}"
            raise ValueError(msg)
        self.refresh_cache_stats()

    def refresh_cache_stats(self) -> OfflineStats:
        """Recount cached data; listeners are notified only if something changed."""
        stats = OfflineStats(
            station_count=self.cache.count(STATION_PREFIX),
            forecast_count=self.cache.count(FORECAST_PREFIX),
            tile_count=self.tiles.repository.get_cache_stats().tile_count,
            size_bytes=self.tiles.repository.cache_size_bytes(),
        )
        if stats != self.stats:
            self.stats = stats
            self._notify()
        return stats
