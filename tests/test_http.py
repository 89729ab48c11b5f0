"""Tests for the shared HTTP session with retry logic."""

from __future__ import annotations

from unittest.mock import patch

import pytest
import requests
from urllib3.util.retry import Retry

from rivr_offline import __version__
from rivr_offline.config import Settings
from rivr_offline.services.http import NO_RETRY, build_retry, create_session, probe_session


def _sent_timeout(s: requests.Session, **send_kwargs: object) -> object:
    prep = requests.Request("GET", "https://example.com").prepare()
    with patch.object(requests.adapters.HTTPAdapter, "send", return_value=requests.Response()) as mock_send:
        s.send(prep, **send_kwargs)
    return mock_send.call_args.kwargs.get("timeout")


@pytest.fixture
def http_settings() -> Settings:
    return Settings(_env_file=None, request_timeout=9, http_max_retries=3, http_backoff_factor=0.5)


class TestBuildRetry:
    """Retry strategy configuration."""

    def test_from_settings(self, http_settings: Settings) -> None:
        retry = build_retry(http_settings)
        assert retry.total == 3
        assert retry.backoff_factor == 0.5

    def test_retries_on_gateway_errors_and_rate_limit(self, http_settings: Settings) -> None:
        retry = build_retry(http_settings)
        for status in (429, 502, 503, 504):
            assert status in retry.status_forcelist

    def test_only_idempotent_methods(self, http_settings: Settings) -> None:
        retry = build_retry(http_settings)
        assert "GET" in retry.allowed_methods
        assert "POST" not in retry.allowed_methods

    def test_defaults(self) -> None:
        assert build_retry(Settings(_env_file=None)).total == 4


class TestCreateSession:
    """Session factory."""

    def test_mounts_retry_adapter(self, http_settings: Settings) -> None:
        s = create_session(http_settings)
        for url in ("https://api.water.noaa.gov", "http://localhost"):
            adapter = s.get_adapter(url)
            assert isinstance(adapter, requests.adapters.HTTPAdapter)
            assert adapter.max_retries.total == 3

    def test_custom_retry(self, http_settings: Settings) -> None:
        s = create_session(http_settings, retry=Retry(total=1))
        assert s.get_adapter("https://example.com").max_retries.total == 1

    def test_user_agent_header(self, http_settings: Settings) -> None:
        assert create_session(http_settings).headers["User-Agent"] == f"rivr-offline/{__version__}"

    def test_settings_timeout_injected(self, http_settings: Settings) -> None:
        assert _sent_timeout(create_session(http_settings)) == 9

    def test_timeout_override(self, http_settings: Settings) -> None:
        assert _sent_timeout(create_session(http_settings, timeout=30)) == 30

    def test_explicit_timeout_kept(self, http_settings: Settings) -> None:
        assert _sent_timeout(create_session(http_settings), timeout=3) == 3


class TestProbeSession:
    def test_never_retries(self, http_settings: Settings) -> None:
        s = probe_session(http_settings)
        assert s.get_adapter("https://api.water.noaa.gov").max_retries is NO_RETRY
        assert NO_RETRY.total == 0
