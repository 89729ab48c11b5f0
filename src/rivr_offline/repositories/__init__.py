"""
Repositories: the offline-first data access used by the CLI and flows.

- forecast.py      - ForecastRepository, ReturnPeriodRepository
- favorites.py     - FavoritesRepository
- notifications.py - NotificationHistoryRepository
"""

from rivr_offline.repositories.favorites import FavoritesRepository
from rivr_offline.repositories.forecast import ForecastRepository, ReturnPeriodRepository
from rivr_offline.repositories.notifications import NotificationHistoryRepository

__all__ = [
    "FavoritesRepository",
    "ForecastRepository",
    "NotificationHistoryRepository",
    "ReturnPeriodRepository",
]
