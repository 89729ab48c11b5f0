"""
Shared HTTP sessions for NWPS, the return-period gateway and Mapbox.

Sessions are built from ``Settings``: retry count and backoff come from
``http_max_retries`` / ``http_backoff_factor`` and requests that don't pass a
timeout get ``request_timeout``. Rate limiting and gateway errors
(429/502/503/504) on idempotent methods are retried by urllib3. Connectivity
probes use ``probe_session()``, which never retries: a slow answer already
means "offline".

Usage::

    from rivr_offline.services.http import create_session

    s = create_session(settings, timeout=settings.long_timeout)
    resp = s.get("https://api.water.noaa.gov/nwps/v1/reaches/23021904")
"""

from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from rivr_offline import __version__
from rivr_offline.config import Settings, get_settings

RETRY_STATUSES = (429, 502, 503, 504)

#: Single attempt, for connectivity probes
NO_RETRY = Retry(total=0, raise_on_status=False)


def build_retry(settings: Settings) -> Retry:
    return Retry(
        total=settings.http_max_retries,
        backoff_factor=settings.http_backoff_factor,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=["GET", "HEAD", "OPTIONS"],
        raise_on_status=False,  # ApiClient maps status codes itself
    )


def user_agent(settings: Settings) -> str:
    return f"{settings.app_name}/{__version__}"


def create_session(
    settings: Settings | None = None,
    *,
    retry: Retry | None = None,
    timeout: float | None = None,
) -> requests.Session:
    """
    Build a ``requests.Session`` with the retry adapter mounted.

    Args:
        settings: Source of retry policy, default timeout and user agent.
        retry: Override the retry policy built from settings.
        timeout: Override ``settings.request_timeout`` as the default timeout.
    """
    settings = settings or get_settings()
    default_timeout = timeout if timeout is not None else settings.request_timeout

    s = requests.Session()
    adapter = HTTPAdapter(max_retries=retry or build_retry(settings))
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    s.headers["User-Agent"] = user_agent(settings)

    _original_send = s.send

    def _send_with_timeout(
        prepared: requests.PreparedRequest, **kwargs: object
    ) -> requests.Response:
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = default_timeout
        return _original_send(prepared, **kwargs)  # type: ignore[arg-type]

    s.send = _send_with_timeout  # type: ignore[method-assign]
    return s


def probe_session(settings: Settings | None = None) -> requests.Session:
    """Single-attempt session for ``ProbeNetworkInfo``."""
    return create_session(settings, retry=NO_RETRY)
