"""
``rivr://`` deep links carried by notifications.

    rivr://reach/{reachId}?highlight=true&alert=true  -> /forecast
    rivr://alerts?type=safety&id=...                  -> /notifications
    rivr://safety                                     -> /safety-info
    rivr://settings/notifications                     -> /settings/notifications
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, quote, urlencode, urlsplit

logger = logging.getLogger(__name__)

SCHEME = "rivr"

ROUTE_FORECAST = "/forecast"
ROUTE_NOTIFICATIONS = "/notifications"
ROUTE_SAFETY = "/safety-info"
ROUTE_SETTINGS = "/settings"
ROUTE_NOTIFICATION_SETTINGS = "/settings/notifications"


@dataclass
class DeepLink:
    route: str
    params: dict[str, str] = field(default_factory=dict)
    reach_id: str | None = None

    def flag(self, name: str) -> bool:
        return self.params.get(name) == "true"


def parse_deep_link(url: str) -> DeepLink | None:
    """Resolve a ``rivr://`` URL to an app route, or None if it isn't one."""
    parts = urlsplit(url)
    if parts.scheme != SCHEME:
        logger.debug("Ignoring deep link with scheme %r", parts.scheme)
        return None

    segments = [s for s in parts.path.split("/") if s]
    params = dict(parse_qsl(parts.query))

    if parts.netloc == "reach":
        if not segments:
            logger.debug("Reach deep link missing reach ID: %s", url)
            return None
        return DeepLink(ROUTE_FORECAST, params, reach_id=segments[0])
    if parts.netloc == "alerts":
        return DeepLink(ROUTE_NOTIFICATIONS, params)
    if parts.netloc == "safety":
        return DeepLink(ROUTE_SAFETY, params)
    if parts.netloc == "settings":
        route = ROUTE_NOTIFICATION_SETTINGS if segments[:1] == ["notifications"] else ROUTE_SETTINGS
        return DeepLink(route, params)

    logger.debug("Unknown deep link host %r", parts.netloc)
    return None


def build_deep_link(host: str, segments: list[str] | None = None, params: dict[str, str] | None = None) -> str:
    url = f"{SCHEME}://{host}"
    if segments:
        url += "/" + "/".join(quote(s, safe="") for s in segments)
    if params:
        url += "?" + urlencode(params)
    return url


def reach_link(reach_id: str, *, highlight: bool = False, alert: bool = False) -> str:
    params = {}
    if highlight:
        params["highlight"] = "true"
    if alert:
        params["alert"] = "true"
    return build_deep_link("reach", [str(reach_id)], params)
