"""
Offline map regions.

A region is a bounding box plus a zoom range. Downloading it fetches every
covering raster tile into the tile cache and records a ``MapRegion`` row.
Tiles already cached are not fetched again; tiles that fail are skipped and
counted so one bad tile doesn't abort a large download.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import requests

from rivr_offline.clock import Clock, system_clock
from rivr_offline.datasources.mapbox import AVERAGE_TILE_BYTES, count_tiles, download_tile, tile_key, tiles_for_bounds
from rivr_offline.schemas import BoundingBox, MapRegion

if TYPE_CHECKING:
    from rivr_offline.storage.offline import OfflineStorageRepository

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
CancelCheck = Callable[[], bool]

DEFAULT_STYLE_URL = "mapbox://styles/mapbox/outdoors-v12"


@dataclass
class RegionDownloadResult:
    region: MapRegion | None
    total: int
    downloaded: int = 0
    already_cached: int = 0
    failed: int = 0
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return self.region is not None and not self.cancelled


@dataclass
class RegionEstimate:
    tile_count: int
    size_bytes: int

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)


class MapboxOfflineService:
    """Downloads, serves and deletes offline map tiles."""

    def __init__(
        self,
        repository: OfflineStorageRepository,
        session: requests.Session,
        access_token: str,
        default_style_url: str = DEFAULT_STYLE_URL,
        clock: Clock = system_clock,
    ) -> None:
        self.repository = repository
        self.session = session
        self.access_token = access_token
        self.default_style_url = default_style_url
        self.clock = clock

    def download_region(
        self,
        bounds: BoundingBox,
        min_zoom: int,
        max_zoom: int,
        style_url: str | None = None,
        name: str | None = None,
        on_progress: ProgressCallback | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> RegionDownloadResult:
        """
        Download every tile covering ``bounds`` from ``min_zoom`` to ``max_zoom``.

        ``on_progress(done, total)`` is called after each tile. When
        ``should_cancel()`` returns True the download stops and no region is
        recorded (tiles fetched so far stay cached).
        """
        if min_zoom > max_zoom:
            msg = f"min_zoom ({min_zoom}) is greater than max_zoom ({max_zoom})"
            raise ValueError(msg)
        if not self.access_token:
            msg = "A Mapbox access token is required to download tiles"
            raise ValueError(msg)

        style = style_url or self.default_style_url
        total = count_tiles(bounds, min_zoom, max_zoom)
        result = RegionDownloadResult(region=None, total=total)
        size_bytes = 0
        done = 0

        for x, y, z in tiles_for_bounds(bounds, min_zoom, max_zoom):
            if should_cancel is not None and should_cancel():
                result.cancelled = True
                logger.info("Region download cancelled after %d of %d tiles", done, total)
                return result

            key = tile_key(style, x, y, z)
            cached = self.repository.get_cached_map_tile(key, update_last_accessed=False)
            if cached is not None:
                result.already_cached += 1
                size_bytes += len(cached)
            else:
                try:
                    data = download_tile(self.session, style, x, y, z, self.access_token)
                except requests.RequestException as e:
                    logger.warning("Failed to download tile %d/%d/%d: %s", z, x, y, e)
                    result.failed += 1
                else:
                    self.repository.cache_map_tile(key, data)
                    result.downloaded += 1
                    size_bytes += len(data)

            done += 1
            if on_progress is not None:
                on_progress(done, total)

        region = MapRegion(
            id=uuid.uuid4().hex,
            name=name or f"Region {bounds.south:.3f},{bounds.west:.3f}",
            bounds=bounds,
            min_zoom=min_zoom,
            max_zoom=max_zoom,
            style_url=style,
            downloaded_at=self.clock(),
            tile_count=result.downloaded + result.already_cached,
            size_bytes=size_bytes,
        )
        self.repository.save_map_region(region)
        result.region = region
        logger.info(
            "Downloaded region %s: %d new, %d cached, %d failed",
            region.name,
            result.downloaded,
            result.already_cached,
            result.failed,
        )
        return result

    def get_cached_tile(self, x: int, y: int, z: int, style_url: str | None = None) -> bytes | None:
        return self.repository.get_cached_map_tile(tile_key(style_url or self.default_style_url, x, y, z))

    def estimate_region_size(self, bounds: BoundingBox, min_zoom: int, max_zoom: int) -> RegionEstimate:
        tiles = count_tiles(bounds, min_zoom, max_zoom)
        return RegionEstimate(tile_count=tiles, size_bytes=tiles * AVERAGE_TILE_BYTES)

    def get_downloaded_regions(self) -> list[MapRegion]:
        return self.repository.get_map_regions()

    def delete_region(self, region_id: str) -> bool:
        """Delete a region and its tiles. Tiles still covered by another region are kept."""
        regions = {r.id: r for r in self.repository.get_map_regions()}
        region = regions.pop(region_id, None)
        if region is None:
            return False

        keep = {
            tile_key(r.style_url, x, y, z)
            for r in regions.values()
            for x, y, z in tiles_for_bounds(r.bounds, r.min_zoom, r.max_zoom)
        }
        freed = 0
        for x, y, z in tiles_for_bounds(region.bounds, region.min_zoom, region.max_zoom):
            key = tile_key(region.style_url, x, y, z)
            if key not in keep:
                freed += self.repository.delete_map_tile(key)
        self.repository.delete_map_region(region_id)
        logger.info("Deleted region %s (%d bytes freed)", region.name, freed)
        return True
