"""
Object graph for one process.

``build_container()`` wires every service from ``Settings`` once, so the CLI
and flows share a single database, session and cache. Tests pass their own
``session``, ``network_info`` and ``clock``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

import requests

from rivr_offline.clock import Clock, system_clock
from rivr_offline.config import Settings, get_settings
from rivr_offline.network import ApiClient, CachingHttpClient, NetworkInfo, ProbeNetworkInfo
from rivr_offline.offline import MapboxOfflineService, OfflineManager
from rivr_offline.repositories import (
    FavoritesRepository,
    ForecastRepository,
    NotificationHistoryRepository,
    ReturnPeriodRepository,
)
from rivr_offline.services.http import create_session, probe_session
from rivr_offline.storage import CacheDatabase, CacheService, OfflineStorageRepository
from rivr_offline.store import BlobStore


@dataclass
class Container:
    settings: Settings
    database: CacheDatabase
    blobs: BlobStore
    session: requests.Session
    network_info: NetworkInfo
    http: CachingHttpClient
    api: ApiClient
    storage: OfflineStorageRepository
    cache: CacheService
    forecasts: ForecastRepository
    return_periods: ReturnPeriodRepository
    favorites: FavoritesRepository
    notifications: NotificationHistoryRepository
    tiles: MapboxOfflineService
    offline: OfflineManager


def build_container(
    settings: Settings | None = None,
    *,
    session: requests.Session | None = None,
    network_info: NetworkInfo | None = None,
    clock: Clock = system_clock,
) -> Container:
    settings = settings or get_settings()
    session = session or create_session(settings, timeout=settings.long_timeout)
    if network_info is None:
        network_info = ProbeNetworkInfo(probe_session(settings), settings.connectivity_probe_url)

    database = CacheDatabase(settings.database_path)
    blobs = BlobStore(settings.blob_dir)
    http = CachingHttpClient(
        session,
        database,
        network_info,
        timeout=settings.long_timeout,
        default_ttl=timedelta(hours=settings.default_cache_hours),
        clock=clock,
    )
    api = ApiClient(http, network_info)
    storage = OfflineStorageRepository(database, blobs, clock)
    cache = CacheService(database, blobs, clock)
    tiles = MapboxOfflineService(
        storage,
        session,
        settings.mapbox_access_token,
        default_style_url=settings.mapbox_style_url,
        clock=clock,
    )

    return Container(
        settings=settings,
        database=database,
        blobs=blobs,
        session=session,
        network_info=network_info,
        http=http,
        api=api,
        storage=storage,
        cache=cache,
        forecasts=ForecastRepository(api, settings, storage, network_info, clock),
        return_periods=ReturnPeriodRepository(api, settings, storage, network_info, clock=clock),
        favorites=FavoritesRepository(database, clock),
        notifications=NotificationHistoryRepository(database, clock),
        tiles=tiles,
        offline=OfflineManager(cache, api, tiles, clock),
    )
