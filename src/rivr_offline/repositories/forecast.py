"""
Forecast and return-period repositories.

Both follow the same offline-first policy and return ``T | Failure`` rather
than raising:

  1. Unless a refresh is forced, a fresh cached copy wins.
  2. Online: fetch, cache, return. If the fetch fails with a network or
     server error, fall back to any cached copy, however old.
  3. Offline: any cached copy, however old, or ``CacheFailure``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rivr_offline.classify import flow_category
from rivr_offline.clock import Clock, system_clock, to_datetime
from rivr_offline.datasources.nwm import fetch_forecast, fetch_return_periods, parse_forecast, parse_return_periods
from rivr_offline.errors import AppError, CacheFailure, Failure, NetworkError, ServerError, ServerFailure, to_failure
from rivr_offline.schemas import FlowCategory, FlowUnit, Forecast, ForecastCollection, ForecastType, ReturnPeriod

if TYPE_CHECKING:
    from rivr_offline.config import Settings
    from rivr_offline.network.api_client import ApiClient
    from rivr_offline.network.connectivity import NetworkInfo
    from rivr_offline.storage.offline import CachedForecast, CachedReturnPeriods, OfflineStorageRepository

logger = logging.getLogger(__name__)

NO_CACHED_FORECAST = "No internet connection and no cached data available"
NO_CACHED_RETURN_PERIODS = "No internet connection and no cached return period data available"

# Errors after which a stale cached copy is better than nothing
_FALLBACK_ERRORS = (NetworkError, ServerError)


class ForecastRepository:
    """Streamflow forecasts with offline fallback."""

    def __init__(
        self,
        api: ApiClient,
        settings: Settings,
        repository: OfflineStorageRepository,
        network_info: NetworkInfo,
        clock: Clock = system_clock,
    ) -> None:
        self.api = api
        self.settings = settings
        self.repository = repository
        self.network_info = network_info
        self.clock = clock

    def get_forecast(
        self,
        reach_id: str,
        forecast_type: ForecastType = ForecastType.SHORT_RANGE,
        *,
        force_refresh: bool = False,
        cache_only: bool = False,
    ) -> ForecastCollection | Failure:
        """With ``cache_only`` the network is never used, as if offline."""
        if not force_refresh:
            cached = self.repository.get_cached_forecast(reach_id, forecast_type)
            if cached is not None:
                return self._from_cache(cached)

        if cache_only or not self.network_info.is_connected():
            stale = self.repository.get_cached_forecast(reach_id, forecast_type, ignore_expiry=True)
            if stale is not None:
                logger.info("Offline: serving cached %s forecast for %s", forecast_type, reach_id)
                return self._from_cache(stale)
            return CacheFailure(NO_CACHED_FORECAST)

        try:
            payload = fetch_forecast(
                self.api, self.settings, reach_id, forecast_type, force_fresh=force_refresh
            )
        except _FALLBACK_ERRORS as e:
            stale = self.repository.get_cached_forecast(reach_id, forecast_type, ignore_expiry=True)
            if stale is not None:
                logger.warning("Fetch failed (%s); serving cached forecast for %s", e.message, reach_id)
                return self._from_cache(stale)
            return to_failure(e)
        except AppError as e:
            return to_failure(e)

        result = parse_forecast(payload, reach_id, forecast_type, retrieved_at=to_datetime(self.clock()))
        self.repository.cache_forecast(reach_id, payload, forecast_type)
        return result

    def get_all_forecasts(
        self, reach_id: str, *, force_refresh: bool = False
    ) -> dict[ForecastType, ForecastCollection] | Failure:
        """Every forecast type that could be loaded; the first failure if none could."""
        results: dict[ForecastType, ForecastCollection] = {}
        failures: list[Failure] = []
        for forecast_type in ForecastType:
            result = self.get_forecast(reach_id, forecast_type, force_refresh=force_refresh)
            if isinstance(result, Failure):
                failures.append(result)
            else:
                results[forecast_type] = result
        if results:
            return results
        return failures[0]

    def get_latest_flow(self, reach_id: str) -> Forecast | None | Failure:
        """Short-range point whose valid time is closest to now."""
        result = self.get_forecast(reach_id, ForecastType.SHORT_RANGE)
        if isinstance(result, Failure):
            return result
        if not result.forecasts:
            return None
        now = to_datetime(self.clock())
        return min(result.forecasts, key=lambda f: abs(f.valid_time - now))

    def clear_stale_cache(self) -> int:
        return self.repository.delete_expired_forecasts()

    def _from_cache(self, cached: CachedForecast) -> ForecastCollection:
        return parse_forecast(
            cached.data,
            cached.reach_id,
            cached.forecast_type,
            retrieved_at=to_datetime(cached.cached_at),
            from_cache=True,
        )


class ReturnPeriodRepository:
    """Return periods, cached in CMS and served in the preferred unit."""

    def __init__(
        self,
        api: ApiClient,
        settings: Settings,
        repository: OfflineStorageRepository,
        network_info: NetworkInfo,
        preferred_unit: FlowUnit = FlowUnit.CFS,
        clock: Clock = system_clock,
    ) -> None:
        self.api = api
        self.settings = settings
        self.repository = repository
        self.network_info = network_info
        self.preferred_unit = preferred_unit
        self.clock = clock

    def get_return_periods(self, reach_id: str, *, force_refresh: bool = False) -> ReturnPeriod | Failure:
        cached = self.repository.get_cached_return_periods(reach_id)
        if cached is not None and not force_refresh:
            period = self._from_cache(cached)
            if not period.is_stale(to_datetime(self.clock())):
                return period.to_unit(self.preferred_unit)

        if not self.network_info.is_connected():
            if cached is not None:
                return self._from_cache(cached).to_unit(self.preferred_unit)
            return CacheFailure(NO_CACHED_RETURN_PERIODS)

        try:
            payload = fetch_return_periods(self.api, self.settings, reach_id, force_fresh=force_refresh)
        except _FALLBACK_ERRORS as e:
            if cached is not None:
                logger.warning("Fetch failed (%s); serving cached return periods for %s", e.message, reach_id)
                return self._from_cache(cached).to_unit(self.preferred_unit)
            return to_failure(e)
        except AppError as e:
            return to_failure(e)

        period = parse_return_periods(payload, reach_id, FlowUnit.CMS, retrieved_at=to_datetime(self.clock()))
        self.repository.cache_return_periods(reach_id, payload, FlowUnit.CMS)
        return period.to_unit(self.preferred_unit)

    def get_flow_category(self, reach_id: str, flow: float) -> FlowCategory | Failure:
        """Category of ``flow`` (in the preferred unit) for this reach."""
        result = self.get_return_periods(reach_id)
        if isinstance(result, Failure):
            return result
        return flow_category(flow, result, self.preferred_unit)

    def exceeds_return_period(self, reach_id: str, flow: float, year: int) -> bool | Failure:
        result = self.get_return_periods(reach_id)
        if isinstance(result, Failure):
            return result
        threshold = result.flow_for_year(year)
        if threshold is None:
            return ServerFailure(f"Return period data for {year}-year not available")
        return flow >= threshold

    def _from_cache(self, cached: CachedReturnPeriods) -> ReturnPeriod:
        return parse_return_periods(
            cached.data, cached.reach_id, cached.unit, retrieved_at=to_datetime(cached.cached_at)
        )
