"""Shared fixtures: a frozen clock, storage rooted in ``tmp_path`` and a wired container."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from unittest.mock import Mock

import pytest

from rivr_offline.clock import FrozenClock
from rivr_offline.config import Settings
from rivr_offline.container import Container, build_container
from rivr_offline.network import StaticNetworkInfo
from rivr_offline.storage import CacheDatabase, CacheService, OfflineStorageRepository
from rivr_offline.store import BlobStore

if TYPE_CHECKING:
    from pathlib import Path

# 2023-11-14T22:13:20Z
NOW_MS = 1_700_000_000_000

SHORT_RANGE_PAYLOAD: dict[str, Any] = {
    "shortRange": {
        "series": {
            "data": [
                {"validTime": "2023-11-14T22:00:00Z", "flow": 12.0},
                {"validTime": "2023-11-14T23:00:00Z", "flow": 14.5},
            ]
        }
    }
}
RETURN_PERIOD_PAYLOAD: list[dict[str, Any]] = [
    {"feature_id": 23021904, "return_period_2": 10.0, "return_period_5": 20.0}
]
TILE_BYTES = b"\x89PNG-tile"


def api_response(payload: Any, status: int = 200) -> Mock:
    """A stand-in for ``requests.Response`` as seen by ``CachingHttpClient``."""
    resp = Mock()
    resp.status_code = status
    resp.text = json.dumps(payload)
    resp.headers = {"Content-Type": "application/json"}
    return resp


def _route(method: str, url: str, **kwargs: Any) -> Mock:
    if "return-period" in url:
        return api_response(RETURN_PERIOD_PAYLOAD)
    if "streamflow" in url:
        return api_response(SHORT_RANGE_PAYLOAD)
    return api_response({"reachId": "23021904", "name": "Provo River"})


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW_MS)


@pytest.fixture
def database(tmp_path: Path) -> CacheDatabase:
    return CacheDatabase(tmp_path / "cache.db")


@pytest.fixture
def blobs(tmp_path: Path) -> BlobStore:
    return BlobStore(tmp_path / "blobs")


@pytest.fixture
def storage(database: CacheDatabase, blobs: BlobStore, clock: FrozenClock) -> OfflineStorageRepository:
    return OfflineStorageRepository(database, blobs, clock)


@pytest.fixture
def cache(database: CacheDatabase, blobs: BlobStore, clock: FrozenClock) -> CacheService:
    return CacheService(database, blobs, clock)


@pytest.fixture
def http_session() -> Mock:
    """Session answering NWPS, return-period and tile requests with canned data."""
    session = Mock()
    session.request.side_effect = _route
    tile = Mock()
    tile.content = TILE_BYTES
    session.get.return_value = tile
    return session


@pytest.fixture
def connectivity() -> StaticNetworkInfo:
    return StaticNetworkInfo(connected=True)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(data_dir=tmp_path / "data", mapbox_access_token="pk.test", api_key="key", user_id="u1")


@pytest.fixture
def container(
    settings: Settings, http_session: Mock, connectivity: StaticNetworkInfo, clock: FrozenClock
) -> Container:
    return build_container(settings, session=http_session, network_info=connectivity, clock=clock)
