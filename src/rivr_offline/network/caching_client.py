"""
HTTP client with an offline response cache.

Successful GET responses are stored in the ``network_cache`` table keyed by
``"{METHOD}_{url}"`` (POST/PUT keys also carry a hash of the body). When the
device is offline, or ``force_offline`` is set, an unexpired cached response
is served instead of touching the network.

Cache lifetime comes from the response: ``Cache-Control: max-age`` first,
then ``Expires``, then ``default_ttl``. Responses marked ``no-cache`` are
never stored.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import timedelta
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Any

from rivr_offline.clock import MS_PER_SECOND, Clock, system_clock, to_ms
from rivr_offline.errors import DatabaseError, NetworkError
from rivr_offline.storage.database import TABLE_NETWORK_CACHE, CacheDatabase

if TYPE_CHECKING:
    import requests

    from rivr_offline.network.connectivity import NetworkInfo

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=2)
_MAX_AGE = re.compile(r"max-age=(\d+)")


@dataclass
class HttpResponse:
    """A buffered response, live or replayed from the cache."""

    status_code: int
    text: str
    headers: dict[str, str] = field(default_factory=dict)
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def string_hash(text: str) -> int:
    """Unsigned 32-bit ``h * 31 + c`` hash, stable across processes."""
    h = 0
    for ch in text:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    return h


def cache_key(method: str, url: str, body: str | None = None) -> str:
    key = f"{method.upper()}_{url}"
    if method.upper() in ("POST", "PUT"):
        key += f"_{string_hash(body or '')}"
    return key


class CachingHttpClient:
    """Wraps a ``requests.Session`` with offline-first response caching."""

    def __init__(
        self,
        session: requests.Session,
        database: CacheDatabase,
        network_info: NetworkInfo,
        timeout: float = 30,
        default_ttl: timedelta = DEFAULT_TTL,
        clock: Clock = system_clock,
    ) -> None:
        self.session = session
        self.db = database
        self.network_info = network_info
        self.timeout = timeout
        self.default_ttl = default_ttl
        self.clock = clock
        self.force_offline = False

    def send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        body: str | None = None,
        timeout: float | None = None,
        prefer_cache: bool = False,
    ) -> HttpResponse:
        """
        Perform a request, serving from the cache when offline.

        With ``prefer_cache`` an unexpired cached response is returned even
        while online; the network is only used on a cache miss.

        Raises:
            NetworkError: offline with nothing cached for this request.
            requests.RequestException: transport failure while online.
        """
        method = method.upper()
        key = cache_key(method, url, body)

        connected = self.network_info.is_connected()
        if not connected or self.force_offline or prefer_cache:
            cached = self.get_cached_response(key)
            if cached is not None:
                return cached
            if not connected:
                raise NetworkError.no_connection()

        resp = self.session.request(
            method, url, headers=headers, data=body, timeout=timeout or self.timeout
        )
        response = HttpResponse(
            status_code=resp.status_code,
            text=resp.text,
            headers={k.lower(): v for k, v in resp.headers.items()},
        )

        if self._should_cache(method, response):
            try:
                self._store(key, method, url, headers, body, response)
            except DatabaseError as e:
                logger.warning("Error caching response for %s: %s", url, e)
        return response

    def get(self, url: str, **kwargs: Any) -> HttpResponse:
        return self.send("GET", url, **kwargs)

    def get_cached_response(self, key: str) -> HttpResponse | None:
        row = self.db.query_one(
            f"SELECT status_code, response_body, response_headers FROM {TABLE_NETWORK_CACHE} "  # noqa: S608
            "WHERE url = ? AND expires_at > ?",
            (key, self.clock()),
        )
        if row is None:
            return None
        try:
            headers = json.loads(row["response_headers"]) if row["response_headers"] else {}
        except json.JSONDecodeError:
            logger.warning("Error retrieving cached response for %s", key)
            return None
        return HttpResponse(
            status_code=row["status_code"],
            text=row["response_body"] or "",
            headers=headers,
            from_cache=True,
        )

    def cache_ttl(self, headers: dict[str, str]) -> timedelta:
        """Lifetime of a response from its caching headers."""
        cache_control = headers.get("cache-control", "")
        match = _MAX_AGE.search(cache_control)
        if match:
            return timedelta(seconds=int(match.group(1)))

        expires = headers.get("expires")
        if expires:
            try:
                expires_ms = to_ms(parsedate_to_datetime(expires))
            except (TypeError, ValueError):
                logger.debug("Ignoring unparseable Expires header: %s", expires)
            else:
                return timedelta(milliseconds=expires_ms - self.clock())
        return self.default_ttl

    def _should_cache(self, method: str, response: HttpResponse) -> bool:
        if not response.ok or method != "GET":
            return False
        return "no-cache" not in response.headers.get("cache-control", "")

    def _store(
        self,
        key: str,
        method: str,
        url: str,
        headers: dict[str, str] | None,
        body: str | None,
        response: HttpResponse,
    ) -> None:
        now = self.clock()
        ttl_ms = int(self.cache_ttl(response.headers).total_seconds() * MS_PER_SECOND)
        self.db.execute(
            f"INSERT OR REPLACE INTO {TABLE_NETWORK_CACHE} "  # noqa: S608
            "(url, method, headers, body, status_code, response_body, response_headers, "
            "created_at, expires_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                key,
                method,
                json.dumps(headers or {}),
                body,
                response.status_code,
                response.text,
                json.dumps(response.headers),
                now,
                now + ttl_ms,
            ),
        )
        logger.debug("Cached %s for %d ms", url, ttl_ms)
