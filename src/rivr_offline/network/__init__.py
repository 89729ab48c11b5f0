"""
Network access: connectivity checks, the offline response cache and the
JSON API client built on it.
"""

from rivr_offline.network.api_client import ApiClient
from rivr_offline.network.caching_client import CachingHttpClient, HttpResponse
from rivr_offline.network.connectivity import NetworkInfo, ProbeNetworkInfo, StaticNetworkInfo

__all__ = [
    "ApiClient",
    "CachingHttpClient",
    "HttpResponse",
    "NetworkInfo",
    "ProbeNetworkInfo",
    "StaticNetworkInfo",
]
