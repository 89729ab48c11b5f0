"""Streamflow forecasts for a single reach."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from rivr_offline.datasources.nwm.client import MAX_MEMBERS, forecast_url
from rivr_offline.errors import DataError
from rivr_offline.schemas import Forecast, ForecastCollection, ForecastType

if TYPE_CHECKING:
    from rivr_offline.config import Settings
    from rivr_offline.network.api_client import ApiClient

logger = logging.getLogger(__name__)

# Block holding the deterministic/mean series for each forecast type
_PRIMARY_SERIES = ("series", "mean")


def fetch_forecast(
    api: ApiClient,
    settings: Settings,
    reach_id: str,
    forecast_type: ForecastType = ForecastType.SHORT_RANGE,
    *,
    force_fresh: bool = False,
) -> dict[str, Any]:
    """
    Fetch the raw streamflow response for one forecast type.

    Returns:
        Raw API response with a ``shortRange``/``mediumRange``/``longRange`` block.

    Raises:
        DataError: The response isn't a JSON object.
    """
    payload = api.get(
        forecast_url(settings, reach_id, forecast_type),
        timeout=settings.long_timeout,
        force_fresh=force_fresh,
    )
    if not isinstance(payload, dict):
        raise DataError.parse_error("Invalid forecast response format")
    return payload


def parse_forecast(
    payload: dict[str, Any],
    reach_id: str,
    forecast_type: ForecastType,
    *,
    retrieved_at: datetime | None = None,
    from_cache: bool = False,
) -> ForecastCollection:
    """
    Normalize an NWPS streamflow response.

    Uses the mean series when present; otherwise the first ensemble member
    (``member1``..``member6``) that has data. Points missing ``flow`` or
    ``validTime``, or that are not objects, are skipped.
    """
    retrieved_at = retrieved_at or datetime.now(UTC)
    block = payload.get(forecast_type.api_key)
    if not isinstance(block, dict):
        block = {}

    forecasts: list[Forecast] = []
    for name in _PRIMARY_SERIES:
        forecasts = _parse_points(block.get(name), reach_id, forecast_type, retrieved_at, member=None)
        if forecasts:
            break

    if not forecasts:
        for i in range(1, MAX_MEMBERS + 1):
            member = f"member{i}"
            forecasts = _parse_points(block.get(member), reach_id, forecast_type, retrieved_at, member)
            if forecasts:
                break

    return ForecastCollection(
        reach_id=str(reach_id),
        forecast_type=forecast_type,
        forecasts=forecasts,
        retrieved_at=retrieved_at,
        from_cache=from_cache,
    )


def _parse_points(
    series: Any,
    reach_id: str,
    forecast_type: ForecastType,
    retrieved_at: datetime,
    member: str | None,
) -> list[Forecast]:
    if not isinstance(series, dict):
        return []
    data = series.get("data")
    if not isinstance(data, list):
        return []
    points = []
    for item in data:
        if not isinstance(item, dict):
            logger.debug("Skipping non-object forecast point %r", item)
            continue
        flow = item.get("flow")
        valid_time = item.get("validTime")
        if flow is None or valid_time is None:
            continue
        try:
            points.append(
                Forecast(
                    reach_id=str(reach_id),
                    valid_time=_parse_time(valid_time),
                    flow=float(flow),
                    forecast_type=forecast_type,
                    retrieved_at=retrieved_at,
                    member=member,
                )
            )
        except (TypeError, ValueError) as e:
            logger.debug("Skipping malformed forecast point %r: %s", item, e)
    return points


def _parse_time(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return dt if dt.tzinfo else dt.replace(tzinfo=UTC)
