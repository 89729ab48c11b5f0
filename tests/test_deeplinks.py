"""Tests for rivr:// deep links."""

from __future__ import annotations

from rivr_offline.deeplinks import (
    ROUTE_FORECAST,
    ROUTE_NOTIFICATION_SETTINGS,
    ROUTE_NOTIFICATIONS,
    ROUTE_SAFETY,
    ROUTE_SETTINGS,
    build_deep_link,
    parse_deep_link,
    reach_link,
)


class TestParseDeepLink:
    def test_reach(self) -> None:
        link = parse_deep_link("rivr://reach/23021904?highlight=true&alert=true")
        assert link is not None
        assert link.route == ROUTE_FORECAST
        assert link.reach_id == "23021904"
        assert link.flag("highlight")
        assert link.flag("alert")

    def test_reach_without_id(self) -> None:
        assert parse_deep_link("rivr://reach") is None

    def test_alerts(self) -> None:
        link = parse_deep_link("rivr://alerts?type=safety&id=abc")
        assert link is not None
        assert link.route == ROUTE_NOTIFICATIONS
        assert link.params == {"type": "safety", "id": "abc"}

    def test_safety(self) -> None:
        link = parse_deep_link("rivr://safety")
        assert link is not None
        assert link.route == ROUTE_SAFETY

    def test_settings(self) -> None:
        notifications = parse_deep_link("rivr://settings/notifications")
        general = parse_deep_link("rivr://settings")
        assert notifications is not None
        assert notifications.route == ROUTE_NOTIFICATION_SETTINGS
        assert general is not None
        assert general.route == ROUTE_SETTINGS

    def test_other_scheme(self) -> None:
        assert parse_deep_link("https://rivr.app/reach/1") is None

    def test_unknown_host(self) -> None:
        assert parse_deep_link("rivr://elsewhere") is None


class TestBuildDeepLink:
    def test_reach_link(self) -> None:
        assert reach_link("123", highlight=True) == "rivr://reach/123?highlight=true"
        assert reach_link("123") == "rivr://reach/123"

    def test_build(self) -> None:
        assert build_deep_link("alerts", params={"type": "safety"}) == "rivr://alerts?type=safety"

    def test_link_parses_back(self) -> None:
        link = parse_deep_link(reach_link("42", alert=True))
        assert link is not None
        assert link.reach_id == "42"
        assert link.flag("alert")
        assert not link.flag("highlight")
