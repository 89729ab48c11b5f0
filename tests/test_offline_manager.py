"""Tests for the offline manager."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from rivr_offline.clock import MS_PER_HOUR, FrozenClock
from rivr_offline.offline import OfflineManager, OfflineStatus
from rivr_offline.offline.manager import OfflineStats
from rivr_offline.schemas import BoundingBox, MapStation
from rivr_offline.store import BlobStore

if TYPE_CHECKING:
    from rivr_offline.container import Container

SMALL = BoundingBox(south=10, west=10, north=20, east=20)
STATION = MapStation(station_id=23021904, lat=40.3, lon=-111.6, name="Provo River")


@pytest.fixture
def manager(container: Container) -> OfflineManager:
    return container.offline


class TestLifecycle:
    def test_initialize(self, manager: OfflineManager) -> None:
        seen: list[OfflineStatus] = []
        manager.add_listener(lambda m: seen.append(m.status))
        manager.initialize()
        assert manager.status is OfflineStatus.READY
        assert seen[0] is OfflineStatus.LOADING
        assert seen[-1] is OfflineStatus.READY

    def test_remove_listener(self, manager: OfflineManager) -> None:
        calls: list[OfflineManager] = []
        listener = calls.append
        manager.add_listener(listener)
        manager.remove_listener(listener)
        manager.set_offline_mode(True)
        assert calls == []

    def test_size_mb_rounds_up(self) -> None:
        assert OfflineStats(size_bytes=1).size_mb == 1
        assert OfflineStats(size_bytes=0).size_mb == 0


class TestOfflineMode:
    def test_toggles_api(self, manager: OfflineManager, container: Container) -> None:
        calls: list[bool] = []
        manager.add_listener(lambda m: calls.append(m.offline_mode))
        manager.set_offline_mode(True)
        manager.set_offline_mode(True)
        assert calls == [True]
        assert container.api.offline_mode
        assert container.http.force_offline


class TestStationsAndForecasts:
    def test_station_without_api_data_skipped(self, manager: OfflineManager) -> None:
        assert not manager.cache_station(STATION, None)
        assert manager.get_cached_station(STATION.station_id) is None

    def test_cache_station(self, manager: OfflineManager) -> None:
        assert manager.cache_station(STATION, {"name": "Provo River"})
        cached = manager.get_cached_station(STATION.station_id)
        assert cached is not None
        assert cached["station"]["name"] == "Provo River"
        assert cached["api_data"] == {"name": "Provo River"}
        assert manager.stats.station_count == 1

    def test_expired_forecast(self, manager: OfflineManager, clock: FrozenClock) -> None:
        manager.cache_forecast(123, {"flow": [1, 2]}, expiry_hours=1)
        assert manager.stats.forecast_count == 1
        clock.advance(2 * MS_PER_HOUR)
        assert manager.get_cached_forecast(123) is None
        stale = manager.get_cached_forecast(123, ignore_expiry=True)
        assert stale is not None
        assert stale["data"] == {"flow": [1, 2]}


class TestRegionDownload:
    def test_download(self, manager: OfflineManager) -> None:
        result = manager.download_region(SMALL, 0, 1, "Test")
        assert result is not None
        assert result.success
        assert manager.status is OfflineStatus.READY
        assert manager.download_progress == 1.0
        assert manager.current_download_name is None
        assert manager.stats.tile_count == 2

    def test_cancel_mid_download(self, manager: OfflineManager, container: Container) -> None:
        def cancel_on_progress(m: OfflineManager) -> None:
            if m.is_downloading and m.download_progress > 0:
                m.cancel_download()

        manager.add_listener(cancel_on_progress)
        result = manager.download_region(SMALL, 0, 1, "Test")
        assert result is not None
        assert result.cancelled
        assert manager.download_progress == 0.0
        assert container.storage.get_map_regions() == []

    def test_one_download_at_a_time(self, manager: OfflineManager) -> None:
        manager.status = OfflineStatus.DOWNLOADING
        assert manager.download_region(SMALL, 0, 1, "Test") is None

    def test_disk_error_does_not_leave_downloading(self, manager: OfflineManager) -> None:
        with (
            patch.object(BlobStore, "write", side_effect=OSError("No space left on device")),
            pytest.raises(OSError),
        ):
            manager.download_region(SMALL, 0, 1, "Test")
        assert manager.status is OfflineStatus.ERROR
        assert manager.current_download_name is None

        manager.clear_error()
        result = manager.download_region(SMALL, 0, 1, "Retry")
        assert result is not None
        assert result.success

    def test_invalid_request_sets_error(self, manager: OfflineManager) -> None:
        assert manager.download_region(SMALL, 3, 1, "Test") is None
        assert manager.status is OfflineStatus.ERROR
        assert manager.error_message is not None
        manager.clear_error()
        assert manager.status is OfflineStatus.READY
        assert manager.error_message is None


class TestClearing:
    def test_clear_by_type(self, manager: OfflineManager) -> None:
        manager.cache_station(STATION, {"name": "Provo River"})
        manager.cache_forecast(1, {})
        manager.clear_cache_by_type("stations")
        assert manager.stats.station_count == 0
        assert manager.stats.forecast_count == 1

    def test_clear_all(self, manager: OfflineManager) -> None:
        manager.cache_station(STATION, {"name": "Provo River"})
        manager.download_region(SMALL, 0, 1, "Test")
        manager.clear_cache_by_type("all")
        assert manager.stats.station_count == 0
        assert manager.stats.tile_count == 0

    def test_unknown_type(self, manager: OfflineManager) -> None:
        with pytest.raises(ValueError, match="Unknown cache type"):
            manager.clear_cache_by_type("bogus")
