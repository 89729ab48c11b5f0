"""Return periods and reach metadata."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from rivr_offline.datasources.nwm.client import reach_url, return_period_url
from rivr_offline.errors import DataError, ServerError
from rivr_offline.schemas import FlowUnit, ReturnPeriod

if TYPE_CHECKING:
    from rivr_offline.config import Settings
    from rivr_offline.network.api_client import ApiClient


def fetch_return_periods(
    api: ApiClient, settings: Settings, reach_id: str, *, force_fresh: bool = False
) -> dict[str, Any]:
    """
    Fetch return periods (in CMS) for a reach.

    The gateway answers with a list, one entry per requested comid.

    Raises:
        ServerError: Empty or unexpected response.
    """
    payload = api.get(
        return_period_url(settings, reach_id),
        timeout=settings.request_timeout,
        force_fresh=force_fresh,
    )
    if isinstance(payload, list) and payload and isinstance(payload[0], dict):
        return payload[0]
    raise ServerError("Invalid return period data format")


def parse_return_periods(
    payload: dict[str, Any],
    reach_id: str,
    unit: FlowUnit = FlowUnit.CMS,
    retrieved_at: datetime | None = None,
) -> ReturnPeriod:
    return ReturnPeriod.from_api(payload, str(reach_id), unit=unit, retrieved_at=retrieved_at)


def fetch_reach(api: ApiClient, settings: Settings, reach_id: str) -> dict[str, Any]:
    """Reach metadata (``name``, ``latitude``, ``longitude``, ...)."""
    payload = api.get(reach_url(settings, reach_id), timeout=settings.request_timeout)
    if not isinstance(payload, dict):
        raise DataError.parse_error("Invalid reach response format")
    return payload
