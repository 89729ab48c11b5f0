"""
Domain models for Rivr offline.

Pydantic models for data from the NOAA/NWM and Mapbox APIs and for rows in
the local cache. These define the canonical schema - datasources normalize
API responses to these.
"""

from __future__ import annotations

import math
from datetime import UTC, date, datetime, timedelta
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# Units
# =============================================================================


class FlowUnit(StrEnum):
    """Flow measurement unit."""

    CFS = "cfs"  # cubic feet per second
    CMS = "cms"  # cubic meters per second

    @property
    def display(self) -> str:
        return "ft³/s" if self is FlowUnit.CFS else "m³/s"

    @property
    def short_name(self) -> str:
        return self.value.upper()

    @property
    def opposite(self) -> FlowUnit:
        return FlowUnit.CMS if self is FlowUnit.CFS else FlowUnit.CFS

    def convert(self, value: float, to: FlowUnit) -> float:
        """Convert ``value`` expressed in this unit to ``to``."""
        if self is to:
            return value
        if self is FlowUnit.CMS:
            return value * CMS_TO_CFS
        return value * CFS_TO_CMS


CMS_TO_CFS = 35.3147
CFS_TO_CMS = 0.0283168


# =============================================================================
# Forecasts
# =============================================================================


class ForecastType(StrEnum):
    """NWM forecast series."""

    SHORT_RANGE = "short_range"
    MEDIUM_RANGE = "medium_range"
    LONG_RANGE = "long_range"

    @property
    def display_name(self) -> str:
        return {
            ForecastType.SHORT_RANGE: "Hourly (3-Day)",
            ForecastType.MEDIUM_RANGE: "9-Day",
            ForecastType.LONG_RANGE: "30-Day",
        }[self]

    @property
    def cache_hours(self) -> int:
        """How long a cached forecast of this type stays fresh."""
        return {
            ForecastType.SHORT_RANGE: 2,
            ForecastType.MEDIUM_RANGE: 12,
            ForecastType.LONG_RANGE: 24,
        }[self]

    @property
    def api_key(self) -> str:
        """Block name in the NWPS streamflow response (``shortRange`` etc)."""
        head, *rest = self.value.split("_")
        return head + "".join(part.capitalize() for part in rest)


class Forecast(BaseModel):
    """A single forecast flow value at one valid time."""

    reach_id: str
    valid_time: datetime
    flow: float
    forecast_type: ForecastType
    retrieved_at: datetime = Field(default_factory=_utc_now)
    member: str | None = None

    def is_today(self, today: date | None = None) -> bool:
        return self.valid_time.date() == (today or date.today())

    def is_stale(self, now: datetime | None = None) -> bool:
        age = (now or _utc_now()) - self.retrieved_at
        return age > timedelta(hours=self.forecast_type.cache_hours)


class ForecastCollection(BaseModel):
    """All forecast values of one series for one reach."""

    reach_id: str
    forecast_type: ForecastType
    forecasts: list[Forecast] = Field(default_factory=list)
    retrieved_at: datetime = Field(default_factory=_utc_now)
    from_cache: bool = False

    def for_day(self, day: date) -> list[Forecast]:
        return [f for f in self.forecasts if f.valid_time.date() == day]

    @property
    def members(self) -> list[str]:
        return sorted({f.member for f in self.forecasts if f.member})

    @property
    def most_recent(self) -> Forecast | None:
        if not self.forecasts:
            return None
        return max(self.forecasts, key=lambda f: f.valid_time)

    @property
    def min_flow(self) -> float:
        return min((f.flow for f in self.forecasts), default=0.0)

    @property
    def max_flow(self) -> float:
        return max((f.flow for f in self.forecasts), default=0.0)

    def is_stale(self, now: datetime | None = None) -> bool:
        age = (now or _utc_now()) - self.retrieved_at
        return age > timedelta(hours=self.forecast_type.cache_hours)


# =============================================================================
# Return periods
# =============================================================================


class ReturnPeriod(BaseModel):
    """Flood-recurrence flow thresholds for a reach (e.g. the 2-year flow)."""

    STANDARD_YEARS: ClassVar[tuple[int, ...]] = (2, 5, 10, 25, 50, 100)
    STALE_AFTER: ClassVar[timedelta] = timedelta(days=30)

    reach_id: str
    flow_values: dict[int, float] = Field(default_factory=dict)
    unit: FlowUnit = FlowUnit.CMS
    retrieved_at: datetime = Field(default_factory=_utc_now)

    def flow_for_year(self, year: int) -> float | None:
        return self.flow_values.get(year)

    def is_stale(self, now: datetime | None = None) -> bool:
        """Return periods rarely change; stale after 30 days."""
        return (now or _utc_now()) - self.retrieved_at > self.STALE_AFTER

    def to_unit(self, unit: FlowUnit) -> ReturnPeriod:
        if unit is self.unit:
            return self
        converted = {year: self.unit.convert(v, unit) for year, v in self.flow_values.items()}
        return self.model_copy(update={"flow_values": converted, "unit": unit})

    @classmethod
    def from_api(
        cls,
        payload: dict[str, Any],
        reach_id: str,
        unit: FlowUnit = FlowUnit.CMS,
        retrieved_at: datetime | None = None,
    ) -> ReturnPeriod:
        """Build from ``return_period_{year}`` keys. Missing, null or non-numeric years are skipped."""
        values: dict[int, float] = {}
        for year in cls.STANDARD_YEARS:
            raw = payload.get(f"return_period_{year}")
            if raw is None:
                continue
            try:
                values[year] = float(raw)
            except (TypeError, ValueError):
                continue
        return cls(
            reach_id=reach_id,
            flow_values=values,
            unit=unit,
            retrieved_at=retrieved_at or _utc_now(),
        )

    def to_cache_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"reach_id": self.reach_id, "unit": self.unit.value}
        for year, value in sorted(self.flow_values.items()):
            data[f"return_period_{year}"] = value
        return data


class FlowCategory(StrEnum):
    """Flow categories, lowest to highest."""

    LOW = "Low"
    NORMAL = "Normal"
    MODERATE = "Moderate"
    ELEVATED = "Elevated"
    HIGH = "High"
    VERY_HIGH = "Very High"
    EXTREME = "Extreme"
    UNKNOWN = "Unknown"


class AlertPriority(StrEnum):
    DEMONSTRATION = "demonstration"
    SAFETY = "safety"
    ACTIVITY = "activity"
    INFORMATION = "information"


# =============================================================================
# Stations / favorites
# =============================================================================


class MapStation(BaseModel):
    """A river reach shown on the map."""

    station_id: int
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    elevation: float | None = None
    name: str | None = None
    type: str | None = None
    description: str | None = None
    color: str | None = None


class Favorite(BaseModel):
    """A user's saved river, ordered by ``position``."""

    model_config = {"str_strip_whitespace": True}

    station_id: str
    name: str
    user_id: str
    position: int = 0
    color: str | None = None
    description: str | None = None
    img_number: int | None = None
    last_updated: int | None = None
    original_api_name: str | None = None
    custom_image_path: str | None = None


class NotificationHistoryItem(BaseModel):
    """A delivered (or attempted) flow alert."""

    id: str
    user_id: str
    reach_id: str
    notification_type: AlertPriority = AlertPriority.INFORMATION
    flow_value: float
    flow_unit: FlowUnit = FlowUnit.CFS
    category: str
    message: str
    delivery_status: str = "sent"
    delivery_method: str = "fcm"
    triggered_by: str = "safety"
    sent_at: datetime = Field(default_factory=_utc_now)
    read_at: datetime | None = None
    error_message: str | None = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None


# =============================================================================
# Geographic / map cache
# =============================================================================


class BoundingBox(BaseModel):
    """Geographic bounding box."""

    south: float = Field(..., ge=-90, le=90)
    west: float = Field(..., ge=-180, le=180)
    north: float = Field(..., ge=-90, le=90)
    east: float = Field(..., ge=-180, le=180)

    @classmethod
    def parse(cls, text: str) -> BoundingBox:
        """Parse ``"south,west,north,east"``."""
        parts = [float(p) for p in text.split(",")]
        if len(parts) != 4:
            msg = f"Expected 4 comma-separated values, got {len(parts)}"
            raise ValueError(msg)
        south, west, north, east = parts
        return cls(south=south, west=west, north=north, east=east)


class MapRegion(BaseModel):
    """Metadata for a downloaded offline map region."""

    id: str
    name: str
    bounds: BoundingBox
    min_zoom: int
    max_zoom: int
    style_url: str
    downloaded_at: int
    tile_count: int = 0
    size_bytes: int = 0


class CacheStats(BaseModel):
    """Counts and size of everything in the offline cache."""

    station_count: int = 0
    forecast_count: int = 0
    return_period_count: int = 0
    tile_count: int = 0
    region_count: int = 0
    size_bytes: int = 0

    @property
    def size_mb(self) -> int:
        return math.ceil(self.size_bytes / (1024 * 1024))
