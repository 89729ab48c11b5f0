"""Offline map regions and the offline manager."""

from rivr_offline.offline.manager import OfflineManager, OfflineStats, OfflineStatus
from rivr_offline.offline.tiles import MapboxOfflineService, RegionDownloadResult, RegionEstimate

__all__ = [
    "MapboxOfflineService",
    "OfflineManager",
    "OfflineStats",
    "OfflineStatus",
    "RegionDownloadResult",
    "RegionEstimate",
]
