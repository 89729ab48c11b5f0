"""Connectivity checks."""

from __future__ import annotations

import logging
from typing import Protocol

import requests

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 5  # seconds


class NetworkInfo(Protocol):
    def is_connected(self) -> bool: ...


class ProbeNetworkInfo:
    """Reports connected when a HEAD request to ``probe_url`` gets any response."""

    def __init__(
        self,
        session: requests.Session,
        probe_url: str,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        self.session = session
        self.probe_url = probe_url
        self.timeout = timeout

    def is_connected(self) -> bool:
        try:
            self.session.head(self.probe_url, timeout=self.timeout, allow_redirects=False)
        except requests.RequestException as e:
            logger.debug("Connectivity probe to %s failed: %s", self.probe_url, e)
            return False
        return True


class StaticNetworkInfo:
    """Fixed connectivity state, flipped by hand."""

    def __init__(self, connected: bool = True) -> None:
        self.connected = connected

    def is_connected(self) -> bool:
        return self.connected
