"""Tests for the JSON API client and its error mapping."""

from __future__ import annotations

from unittest.mock import Mock

import pytest
import requests

from rivr_offline.errors import AuthError, DataError, NetworkError, UnexpectedError
from rivr_offline.network.api_client import ApiClient, build_url, encode_body, process_response
from rivr_offline.network.caching_client import HttpResponse

URL = "https://api.water.noaa.gov/nwps/v1/reaches/123"


@pytest.fixture
def http() -> Mock:
    m = Mock()
    m.send.return_value = HttpResponse(status_code=200, text='{"reach": {"name": "Provo"}}')
    return m


@pytest.fixture
def api(http: Mock) -> ApiClient:
    return ApiClient(http)


class TestBuildUrl:
    def test_no_params(self) -> None:
        assert build_url(URL) == URL

    def test_adds_params(self) -> None:
        assert build_url(URL, {"series": "short_range"}) == f"{URL}?series=short_range"

    def test_merges_existing_query(self) -> None:
        url = build_url(f"{URL}?a=1&b=2", {"b": "3", "c": None})
        assert url == f"{URL}?a=1&b=3"


class TestEncodeBody:
    def test_passthrough(self) -> None:
        assert encode_body(None) is None
        assert encode_body("raw") == "raw"

    def test_json(self) -> None:
        assert encode_body({"a": 1}) == '{"a": 1}'


class TestProcessResponse:
    """Status code to result/error mapping."""

    def test_success(self) -> None:
        assert process_response(HttpResponse(200, '{"a": 1}')) == {"a": 1}

    def test_empty_body(self) -> None:
        assert process_response(HttpResponse(204, "")) is None

    def test_invalid_json(self) -> None:
        with pytest.raises(DataError) as exc_info:
            process_response(HttpResponse(200, "<html>"))
        assert exc_info.value.code == "parse_error"

    def test_unauthorized(self) -> None:
        with pytest.raises(AuthError):
            process_response(HttpResponse(401, ""))

    def test_not_found(self) -> None:
        with pytest.raises(DataError) as exc_info:
            process_response(HttpResponse(404, ""))
        assert exc_info.value.code == "not_found"

    def test_other_status(self) -> None:
        with pytest.raises(NetworkError) as exc_info:
            process_response(HttpResponse(503, '{"message": "maintenance"}'))
        assert exc_info.value.status_code == 503
        assert exc_info.value.code == "http_503"
        assert exc_info.value.message == "maintenance"

    def test_other_status_plain_body(self) -> None:
        with pytest.raises(NetworkError) as exc_info:
            process_response(HttpResponse(500, "oops"))
        assert exc_info.value.message == "HTTP Error: 500"


class TestApiClient:
    """Requests through the caching client."""

    def test_get_is_cache_first(self, api: ApiClient, http: Mock) -> None:
        assert api.get(URL) == {"reach": {"name": "Provo"}}
        assert http.send.call_args.kwargs["prefer_cache"] is True

    def test_force_fresh(self, api: ApiClient, http: Mock) -> None:
        api.force_fresh(URL)
        assert http.send.call_args.kwargs["prefer_cache"] is False

    def test_params_and_headers(self, api: ApiClient, http: Mock) -> None:
        api.get(URL, params={"series": "long_range"}, headers={"X-Key": "k"})
        args, kwargs = http.send.call_args
        assert args == ("GET", f"{URL}?series=long_range")
        assert kwargs["headers"]["X-Key"] == "k"
        assert kwargs["headers"]["Accept"] == "application/json"

    def test_post_encodes_body(self, api: ApiClient, http: Mock) -> None:
        api.post(URL, body={"a": 1})
        assert http.send.call_args.kwargs["body"] == '{"a": 1}'

    def test_offline_mode(self, api: ApiClient, http: Mock) -> None:
        api.set_offline_mode(True)
        assert api.offline_mode
        assert http.force_offline is True

    def test_timeout_mapped(self, api: ApiClient, http: Mock) -> None:
        http.send.side_effect = requests.Timeout("slow")
        with pytest.raises(NetworkError) as exc_info:
            api.get(URL, timeout=5)
        assert exc_info.value.code == "timeout"
        assert "5 seconds" in exc_info.value.message

    def test_connection_error_mapped(self, api: ApiClient, http: Mock) -> None:
        http.send.side_effect = requests.ConnectionError("refused")
        with pytest.raises(NetworkError) as exc_info:
            api.get(URL)
        assert exc_info.value.code == "no_connection"

    def test_app_errors_pass_through(self, api: ApiClient, http: Mock) -> None:
        http.send.side_effect = NetworkError.no_connection()
        with pytest.raises(NetworkError):
            api.get(URL)

    def test_unexpected_error(self, api: ApiClient, http: Mock) -> None:
        http.send.side_effect = RuntimeError("bad")
        with pytest.raises(UnexpectedError):
            api.get(URL)
