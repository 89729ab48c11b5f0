"""Tests for domain models."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

import pytest
from pydantic import ValidationError

from rivr_offline.schemas import (
    BoundingBox,
    CacheStats,
    FlowUnit,
    Forecast,
    ForecastCollection,
    ForecastType,
    MapStation,
    ReturnPeriod,
)

T0 = datetime(2023, 11, 14, 22, 0, tzinfo=UTC)


def _forecast(hours: int, flow: float, member: str | None = None) -> Forecast:
    return Forecast(
        reach_id="1",
        valid_time=T0 + timedelta(hours=hours),
        flow=flow,
        forecast_type=ForecastType.SHORT_RANGE,
        retrieved_at=T0,
        member=member,
    )


class TestFlowUnit:
    def test_convert(self) -> None:
        assert FlowUnit.CMS.convert(1.0, FlowUnit.CFS) == pytest.approx(35.3147)
        assert FlowUnit.CFS.convert(100.0, FlowUnit.CMS) == pytest.approx(2.83168)
        assert FlowUnit.CFS.convert(5.0, FlowUnit.CFS) == 5.0

    def test_labels(self) -> None:
        assert FlowUnit.CFS.short_name == "CFS"
        assert FlowUnit.CFS.opposite is FlowUnit.CMS


class TestForecastType:
    def test_api_key(self) -> None:
        assert ForecastType.SHORT_RANGE.api_key == "shortRange"
        assert ForecastType.LONG_RANGE.api_key == "longRange"

    def test_cache_hours(self) -> None:
        assert [t.cache_hours for t in ForecastType] == [2, 12, 24]


class TestForecastCollection:
    def test_summary(self) -> None:
        collection = ForecastCollection(
            reach_id="1",
            forecast_type=ForecastType.SHORT_RANGE,
            forecasts=[_forecast(0, 5.0), _forecast(1, 9.0), _forecast(26, 2.0)],
            retrieved_at=T0,
        )
        assert collection.min_flow == 2.0
        assert collection.max_flow == 9.0
        assert collection.most_recent is not None
        assert collection.most_recent.flow == 2.0
        assert len(collection.for_day(date(2023, 11, 14))) == 2

    def test_stale(self) -> None:
        collection = ForecastCollection(reach_id="1", forecast_type=ForecastType.SHORT_RANGE, retrieved_at=T0)
        assert not collection.is_stale(T0 + timedelta(hours=1))
        assert collection.is_stale(T0 + timedelta(hours=3))


class TestReturnPeriod:
    def test_from_api_and_back(self) -> None:
        period = ReturnPeriod.from_api({"return_period_2": "10.5", "return_period_100": 90}, "1", retrieved_at=T0)
        assert period.flow_values == {2: 10.5, 100: 90.0}
        assert period.to_cache_dict() == {
            "reach_id": "1",
            "unit": "cms",
            "return_period_2": 10.5,
            "return_period_100": 90.0,
        }

    def test_stale_after_thirty_days(self) -> None:
        period = ReturnPeriod(reach_id="1", retrieved_at=T0)
        assert not period.is_stale(T0 + timedelta(days=29))
        assert period.is_stale(T0 + timedelta(days=31))

    def test_to_same_unit_is_identity(self) -> None:
        period = ReturnPeriod(reach_id="1", flow_values={2: 1.0})
        assert period.to_unit(FlowUnit.CMS) is period


class TestGeo:
    def test_parse_bounds(self) -> None:
        bounds = BoundingBox.parse("40.2,-111.7,40.4,-111.5")
        assert (bounds.south, bounds.west, bounds.north, bounds.east) == (40.2, -111.7, 40.4, -111.5)

    def test_parse_bounds_wrong_count(self) -> None:
        with pytest.raises(ValueError, match="Expected 4"):
            BoundingBox.parse("1,2,3")

    def test_station_lat_range(self) -> None:
        with pytest.raises(ValidationError):
            MapStation(station_id=1, lat=91, lon=0)

    def test_cache_stats_size_mb(self) -> None:
        assert CacheStats(size_bytes=1).size_mb == 1
        assert CacheStats(size_bytes=3 * 1024 * 1024).size_mb == 3
