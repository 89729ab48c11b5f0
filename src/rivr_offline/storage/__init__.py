"""Local persistence: the SQLite cache database and the caches built on it."""

from rivr_offline.storage.cache import CacheService
from rivr_offline.storage.database import CacheDatabase
from rivr_offline.storage.offline import OfflineStorageRepository

__all__ = ["CacheDatabase", "CacheService", "OfflineStorageRepository"]
