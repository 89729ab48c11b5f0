"""
Prefect flow that keeps favorites available offline.

For each of the user's favorite reaches it refreshes the short-range
forecast and the return periods so they are cached for offline use, then
trims the cache back under ``max_cache_size_mb``.

Run locally:
    python -m rivr_offline.flows.sync

Run with Prefect dashboard:
    prefect server start &
    python -m rivr_offline.flows.sync
"""

from __future__ import annotations

from typing import Any

from prefect import flow, task

from rivr_offline.container import Container, build_container
from rivr_offline.errors import AppError, Failure
from rivr_offline.schemas import ForecastType

_container: Container | None = None


class RefreshError(AppError):
    """A favorite could not be refreshed. Raised so Prefect retries the task."""

    default_code = "refresh_failed"


def get_container() -> Container:
    """Process-wide container, built from settings on first use."""
    global _container  # noqa: PLW0603
    if _container is None:
        _container = build_container()
    return _container


@task(name="refresh-forecast", retries=2, retry_delay_seconds=5)
def refresh_forecast(reach_id: str) -> int:
    """Refresh the short-range forecast. Returns the point count."""
    result = get_container().forecasts.get_forecast(
        reach_id, ForecastType.SHORT_RANGE, force_refresh=True
    )
    if isinstance(result, Failure):
        raise RefreshError(f"Forecast for {reach_id} failed: {result.message}")
    return len(result.forecasts)


@task(name="refresh-return-periods", retries=2, retry_delay_seconds=5)
def refresh_return_periods(reach_id: str) -> int:
    """Refresh return periods. Returns how many years are known."""
    result = get_container().return_periods.get_return_periods(reach_id, force_refresh=True)
    if isinstance(result, Failure):
        raise RefreshError(f"Return periods for {reach_id} failed: {result.message}")
    return len(result.flow_values)


@task(name="cleanup-cache")
def cleanup_cache(max_cache_size_mb: float) -> dict[str, Any]:
    stats = get_container().storage.perform_cache_cleanup(max_cache_size_mb)
    return stats.model_dump()


@flow(name="sync-favorites", log_prints=True)
def sync_favorites(user_id: str | None = None, max_cache_size_mb: float | None = None) -> dict[str, Any]:
    """
    Refresh every favorite of ``user_id`` and trim the cache.

    Skips fetching entirely while offline; cleanup still runs.
    """
    container = get_container()
    settings = container.settings
    user_id = user_id or settings.user_id
    budget = max_cache_size_mb if max_cache_size_mb is not None else settings.max_cache_size_mb

    results: dict[str, Any] = {"user_id": user_id, "favorites": 0, "forecasts": 0, "return_periods": 0, "failed": []}

    favorites = container.favorites.get_favorites(user_id)
    if isinstance(favorites, Failure):
        print(f"Could not load favorites: {favorites.message}")
        favorites = []
    results["favorites"] = len(favorites)

    if not container.network_info.is_connected():
        print("Offline, skipping refresh.")
    else:
        for fav in favorites:
            print(f"Refreshing {fav.name} ({fav.station_id})...")
            failed = False
            try:
                refresh_forecast(fav.station_id)
                results["forecasts"] += 1
            except RefreshError as e:
                print(e.message)
                failed = True
            try:
                refresh_return_periods(fav.station_id)
                results["return_periods"] += 1
            except RefreshError as e:
                print(e.message)
                failed = True
            if failed:
                results["failed"].append(fav.station_id)

    results["cache"] = cleanup_cache(budget)
    print(f"Cache now {results['cache']['size_bytes']} bytes")
    return results


if __name__ == "__main__":
    result = sync_favorites()
    print(f"Flow complete: {result}")
