"""Mapbox raster tiles.

Public API:
  - tiles: tile math (lon_to_tile_x, lat_to_tile_y, tiles_for_bounds,
    count_tiles), tile_key, download_tile
  - client: tile_url, AVERAGE_TILE_BYTES
"""

from rivr_offline.datasources.mapbox.client import AVERAGE_TILE_BYTES, tile_url
from rivr_offline.datasources.mapbox.tiles import (
    count_tiles,
    download_tile,
    lat_to_tile_y,
    lon_to_tile_x,
    tile_key,
    tiles_for_bounds,
)

__all__ = [
    "AVERAGE_TILE_BYTES",
    "count_tiles",
    "download_tile",
    "lat_to_tile_y",
    "lon_to_tile_x",
    "tile_key",
    "tile_url",
    "tiles_for_bounds",
]
