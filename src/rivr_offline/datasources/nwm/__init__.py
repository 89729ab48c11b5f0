"""NOAA National Water Model data source.

Public API:
  - forecasts: fetch_forecast, parse_forecast (short/medium/long range)
  - returns: fetch_return_periods, parse_return_periods, fetch_reach
  - client: endpoint URLs
"""

from rivr_offline.datasources.nwm.client import forecast_url, reach_url, return_period_url
from rivr_offline.datasources.nwm.forecasts import fetch_forecast, parse_forecast
from rivr_offline.datasources.nwm.returns import fetch_reach, fetch_return_periods, parse_return_periods

__all__ = [
    "fetch_forecast",
    "fetch_reach",
    "fetch_return_periods",
    "forecast_url",
    "parse_forecast",
    "parse_return_periods",
    "reach_url",
    "return_period_url",
]
