"""
JSON API client.

Sits on top of ``CachingHttpClient`` and turns HTTP outcomes into either a
decoded JSON value or one of the ``AppError`` exceptions:

    2xx           -> decoded JSON (None for an empty body)
    401           -> AuthError
    404           -> DataError (not_found)
    other status  -> NetworkError (http_{status})
    no connection -> NetworkError (no_connection)
    timeout       -> NetworkError (timeout)

GETs are cache-first unless ``force_fresh=True``; ``set_offline_mode(True)``
makes every request cache-first.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

from rivr_offline.errors import AppError, AuthError, DataError, NetworkError, UnexpectedError

if TYPE_CHECKING:
    from rivr_offline.network.caching_client import CachingHttpClient, HttpResponse
    from rivr_offline.network.connectivity import NetworkInfo

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15  # seconds
DEFAULT_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


def build_url(url: str, params: dict[str, Any] | None = None) -> str:
    """Merge ``params`` into the query string of ``url`` (``params`` win)."""
    if not params:
        return url
    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query.update({k: str(v) for k, v in params.items() if v is not None})
    return urlunsplit(parts._replace(query=urlencode(query)))


def encode_body(body: Any) -> str | None:
    if body is None or isinstance(body, str):
        return body
    return json.dumps(body)


class ApiClient:
    """Makes JSON requests and maps failures to application errors."""

    def __init__(self, client: CachingHttpClient, network_info: NetworkInfo | None = None) -> None:
        self.client = client
        self.network_info = network_info or client.network_info
        self.offline_mode = False

    def set_offline_mode(self, enabled: bool) -> None:
        """Serve cached responses whenever available, even while online."""
        self.offline_mode = enabled
        self.client.force_offline = enabled

    def get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        force_fresh: bool = False,
    ) -> Any:
        return self._request(
            "GET", url, params=params, headers=headers, timeout=timeout, prefer_cache=not force_fresh
        )

    def force_fresh(self, url: str, **kwargs: Any) -> Any:
        """GET that skips the response cache while online."""
        return self.get(url, force_fresh=True, **kwargs)

    def post(self, url: str, *, body: Any = None, **kwargs: Any) -> Any:
        return self._request("POST", url, body=body, **kwargs)

    def put(self, url: str, *, body: Any = None, **kwargs: Any) -> Any:
        return self._request("PUT", url, body=body, **kwargs)

    def delete(self, url: str, *, body: Any = None, **kwargs: Any) -> Any:
        return self._request("DELETE", url, body=body, **kwargs)

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        body: Any = None,
        timeout: float = DEFAULT_TIMEOUT,
        prefer_cache: bool = False,
    ) -> Any:
        full_url = build_url(url, params)
        try:
            response = self.client.send(
                method,
                full_url,
                headers={**DEFAULT_HEADERS, **(headers or {})},
                body=encode_body(body),
                timeout=timeout,
                prefer_cache=prefer_cache,
            )
        except AppError:
            raise
        except requests.Timeout as e:
            raise NetworkError.timeout(timeout, original_error=e) from e
        except requests.ConnectionError as e:
            raise NetworkError.no_connection(original_error=e) from e
        except Exception as e:
            raise UnexpectedError(f"Failed to complete request: {e}", original_error=e) from e

        if response.from_cache:
            logger.debug("%s %s served from cache", method, full_url)
        return process_response(response)


def process_response(response: HttpResponse) -> Any:
    """Decode a response body or raise the matching error."""
    status = response.status_code
    if 200 <= status < 300:
        if not response.text:
            return None
        try:
            return json.loads(response.text)
        except json.JSONDecodeError as e:
            raise DataError.parse_error(f"Invalid JSON response: {e}", original_error=e) from e

    if status == 401:
        raise AuthError.unauthorized()
    if status == 404:
        raise DataError.not_found()
    raise NetworkError.http_error(status, _error_message(response.text))


def _error_message(text: str) -> str | None:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        return str(message) if message else None
    return None
