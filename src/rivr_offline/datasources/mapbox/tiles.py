"""Web Mercator tile math and single-tile downloads."""

from __future__ import annotations

import hashlib
import math
from collections.abc import Iterator
from typing import TYPE_CHECKING

from rivr_offline.datasources.mapbox.client import tile_url

if TYPE_CHECKING:
    import requests

    from rivr_offline.schemas import BoundingBox

# Web Mercator is undefined past these latitudes
MAX_LATITUDE = 85.05112878


def lon_to_tile_x(lon: float, zoom: int) -> int:
    n = 2**zoom
    x = math.floor((lon + 180.0) / 360.0 * n)
    return min(max(x, 0), n - 1)


def lat_to_tile_y(lat: float, zoom: int) -> int:
    n = 2**zoom
    lat = min(max(lat, -MAX_LATITUDE), MAX_LATITUDE)
    lat_rad = math.radians(lat)
    y = math.floor((1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0 * n)
    return min(max(y, 0), n - 1)


def tiles_for_bounds(bounds: BoundingBox, min_zoom: int, max_zoom: int) -> Iterator[tuple[int, int, int]]:
    """Yield ``(x, y, z)`` for every tile covering ``bounds`` at each zoom level."""
    for z in range(min_zoom, max_zoom + 1):
        x0, x1 = lon_to_tile_x(bounds.west, z), lon_to_tile_x(bounds.east, z)
        # Tile y grows southward
        y0, y1 = lat_to_tile_y(bounds.north, z), lat_to_tile_y(bounds.south, z)
        for x in range(min(x0, x1), max(x0, x1) + 1):
            for y in range(min(y0, y1), max(y0, y1) + 1):
                yield x, y, z


def count_tiles(bounds: BoundingBox, min_zoom: int, max_zoom: int) -> int:
    total = 0
    for z in range(min_zoom, max_zoom + 1):
        xs = abs(lon_to_tile_x(bounds.east, z) - lon_to_tile_x(bounds.west, z)) + 1
        ys = abs(lat_to_tile_y(bounds.south, z) - lat_to_tile_y(bounds.north, z)) + 1
        total += xs * ys
    return total


def tile_key(style_url: str, x: int, y: int, z: int) -> str:
    """Stable cache key: MD5 hex of ``"{style_url}-{x}-{y}-{z}"``."""
    return hashlib.md5(f"{style_url}-{x}-{y}-{z}".encode(), usedforsecurity=False).hexdigest()


def download_tile(
    session: requests.Session, style_url: str, x: int, y: int, z: int, access_token: str
) -> bytes:
    """
    Download one raster tile.

    Raises:
        requests.HTTPError: Non-2xx response.
    """
    resp = session.get(tile_url(style_url, x, y, z, access_token))
    resp.raise_for_status()
    return resp.content
