"""NOAA National Water Model (NWPS) endpoints.

API docs: https://api.water.noaa.gov/nwps/v1/docs/

Forecasts and reach metadata come from NWPS; return periods from a separate
gateway that wants an API key and a ``comids`` query parameter.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rivr_offline.config import Settings
    from rivr_offline.schemas import ForecastType

# Ensemble members checked when a series has no mean data
MAX_MEMBERS = 6


def forecast_url(settings: Settings, reach_id: str, forecast_type: ForecastType) -> str:
    return f"{settings.forecast_url(reach_id)}?series={forecast_type.value}"


def reach_url(settings: Settings, reach_id: str) -> str:
    return settings.reach_url(reach_id)


def return_period_url(settings: Settings, reach_id: str) -> str:
    return settings.return_period_url(reach_id)
