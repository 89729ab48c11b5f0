"""Mapbox raster tile endpoints.

Style URLs (``mapbox://styles/{owner}/{style}``) are served by the Static
Tiles API; tileset URLs (``mapbox://{tileset_id}``) by the v4 raster API.
"""

from __future__ import annotations

MAPBOX_API = "https://api.mapbox.com"
STYLE_PREFIX = "mapbox://styles/"
TILESET_PREFIX = "mapbox://"

TILE_SIZE = 256  # pixels

# Rough average size of one raster tile, used for download estimates
AVERAGE_TILE_BYTES = 15_000


def tile_url(style_url: str, x: int, y: int, z: int, access_token: str) -> str:
    """
    Raster tile URL for a Mapbox style or tileset.

    Raises:
        ValueError: ``style_url`` is not a ``mapbox://`` URL.
    """
    if style_url.startswith(STYLE_PREFIX):
        style_id = style_url.removeprefix(STYLE_PREFIX)
        return (
            f"{MAPBOX_API}/styles/v1/{style_id}/tiles/{TILE_SIZE}/{z}/{x}/{y}"
            f"?access_token={access_token}"
        )
    if style_url.startswith(TILESET_PREFIX):
        tileset_id = style_url.removeprefix(TILESET_PREFIX)
        return f"{MAPBOX_API}/v4/{tileset_id}/{z}/{x}/{y}.png?access_token={access_token}"
    msg = f"Not a Mapbox URL: {style_url}"
    raise ValueError(msg)
