"""
Tests for CLI functionality.

Commands run against a container wired to tmp_path and canned HTTP responses.
"""

from __future__ import annotations

import argparse
from io import StringIO
from typing import TYPE_CHECKING
from unittest.mock import Mock, patch

import pytest

from rivr_offline.cli import (
    cmd_cleanup,
    cmd_clear,
    cmd_estimate_region,
    cmd_favorites,
    cmd_forecast,
    cmd_info,
    cmd_stats,
    cmd_sync,
    create_parser,
    main,
)
from rivr_offline.clock import MS_PER_DAY, FrozenClock
from rivr_offline.schemas import MapStation

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rivr_offline.container import Container
    from rivr_offline.network import StaticNetworkInfo


@pytest.fixture(autouse=True)
def cli_container(container: Container) -> Iterator[Container]:
    with patch("rivr_offline.cli.get_container", return_value=container):
        yield container


def _forecast_args(**overrides: object) -> argparse.Namespace:
    values: dict[str, object] = {"reach_id": "23021904", "type": "short_range", "refresh": False, "offline": False}
    values.update(overrides)
    return argparse.Namespace(**values)


class TestCreateParser:
    """Tests for create_parser function."""

    def test_prog(self) -> None:
        assert create_parser().prog == "rivr-offline"

    def test_version(self) -> None:
        with pytest.raises(SystemExit):
            create_parser().parse_args(["--version"])

    def test_debug_flag(self) -> None:
        args = create_parser().parse_args(["--debug", "info"])
        assert args.debug is True

    def test_forecast_defaults(self) -> None:
        args = create_parser().parse_args(["forecast", "123"])
        assert args.reach_id == "123"
        assert args.type == "short_range"
        assert not args.refresh

    def test_clear_rejects_unknown_type(self) -> None:
        with pytest.raises(SystemExit):
            create_parser().parse_args(["clear", "everything"])

    def test_estimate_zoom_defaults(self) -> None:
        args = create_parser().parse_args(["estimate-region", "40.2,-111.7,40.4,-111.5"])
        assert (args.min_zoom, args.max_zoom) == (8, 14)

    def test_favorites_add(self) -> None:
        args = create_parser().parse_args(["favorites", "add", "123", "Provo River"])
        assert args.action == "add"
        assert args.name == "Provo River"


class TestCmdInfo:
    def test_prints_app_info(self) -> None:
        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            assert cmd_info(argparse.Namespace()) == 0
            assert "Application" in mock_stdout.getvalue()


class TestCacheCommands:
    """stats, cleanup and clear."""

    def test_stats(self, cli_container: Container) -> None:
        cli_container.storage.cache_station(MapStation(station_id=1, lat=40.0, lon=-111.0, name="A"))
        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            assert cmd_stats(argparse.Namespace()) == 0
            assert "Stations: 1" in mock_stdout.getvalue()

    def test_cleanup_uses_settings_budget(self, cli_container: Container) -> None:
        with patch.object(
            cli_container.storage, "perform_cache_cleanup", wraps=cli_container.storage.perform_cache_cleanup
        ) as mock_cleanup:
            assert cmd_cleanup(argparse.Namespace(max_mb=None)) == 0
            mock_cleanup.assert_called_once_with(cli_container.settings.max_cache_size_mb)

    def test_cleanup_explicit_budget(self, cli_container: Container) -> None:
        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            assert cmd_cleanup(argparse.Namespace(max_mb=5.0)) == 0
            assert "budget 5 MB" in mock_stdout.getvalue()

    def test_clear(self, cli_container: Container) -> None:
        cli_container.storage.cache_forecast("1", {})
        assert cmd_clear(argparse.Namespace(type="forecasts")) == 0
        assert cli_container.storage.get_cache_stats().forecast_count == 0


class TestCmdForecast:
    def test_prints_points(self) -> None:
        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            assert cmd_forecast(_forecast_args()) == 0
            output = mock_stdout.getvalue()
        assert "(network)" in output
        assert "12.00" in output

    def test_second_call_from_cache(self) -> None:
        cmd_forecast(_forecast_args())
        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            cmd_forecast(_forecast_args())
            assert "(cache)" in mock_stdout.getvalue()

    def test_offline_without_cache_fails(self, connectivity: StaticNetworkInfo) -> None:
        connectivity.connected = False
        with patch("sys.stderr", new=StringIO()) as mock_stderr:
            assert cmd_forecast(_forecast_args(offline=True)) == 1
            assert "no cached data" in mock_stderr.getvalue()

    def test_offline_never_touches_network(self, http_session: Mock) -> None:
        with patch("sys.stderr", new=StringIO()):
            assert cmd_forecast(_forecast_args(offline=True, reach_id="9")) == 1
        http_session.request.assert_not_called()

    def test_offline_serves_expired_copy(self, http_session: Mock, clock: FrozenClock) -> None:
        cmd_forecast(_forecast_args())
        clock.advance(MS_PER_DAY)
        http_session.request.reset_mock()
        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            assert cmd_forecast(_forecast_args(offline=True)) == 0
            assert "(cache)" in mock_stdout.getvalue()
        http_session.request.assert_not_called()


class TestCmdFavorites:
    def test_add_list_remove(self) -> None:
        assert cmd_favorites(argparse.Namespace(action="add", station_id="123", name="Provo River")) == 0
        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            assert cmd_favorites(argparse.Namespace(action="list")) == 0
            assert "Provo River" in mock_stdout.getvalue()
        assert cmd_favorites(argparse.Namespace(action="remove", station_id="123")) == 0

    def test_remove_missing(self) -> None:
        with patch("sys.stderr", new=StringIO()):
            assert cmd_favorites(argparse.Namespace(action="remove", station_id="nope")) == 1


class TestCmdSync:
    def test_success(self) -> None:
        with patch("rivr_offline.cli.sync_favorites", return_value={"favorites": 2, "failed": []}) as mock_sync:
            assert cmd_sync(argparse.Namespace(user="u2")) == 0
            mock_sync.assert_called_once_with(user_id="u2")

    def test_failures_return_one(self) -> None:
        with patch("rivr_offline.cli.sync_favorites", return_value={"favorites": 2, "failed": ["1"]}):
            assert cmd_sync(argparse.Namespace(user=None)) == 1


class TestCmdEstimateRegion:
    def test_estimate(self) -> None:
        args = argparse.Namespace(bounds="10,10,20,20", min_zoom=0, max_zoom=1)
        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            assert cmd_estimate_region(args) == 0
            assert "Tiles: 2" in mock_stdout.getvalue()

    def test_bad_bounds(self) -> None:
        args = argparse.Namespace(bounds="10,10,20", min_zoom=0, max_zoom=1)
        with patch("sys.stderr", new=StringIO()):
            assert cmd_estimate_region(args) == 1

    def test_bad_zoom_range(self) -> None:
        args = argparse.Namespace(bounds="10,10,20,20", min_zoom=5, max_zoom=1)
        with patch("sys.stderr", new=StringIO()):
            assert cmd_estimate_region(args) == 1


class TestMain:
    """Tests for main entry point."""

    def test_no_command_shows_help(self) -> None:
        with patch("sys.argv", ["rivr-offline"]), patch("sys.stdout", new=StringIO()):
            assert main() == 0

    def test_dispatches_command(self) -> None:
        with (
            patch("sys.argv", ["rivr-offline", "stats"]),
            patch("rivr_offline.cli.cmd_stats", return_value=0) as mock_cmd,
            patch("rivr_offline.cli.configure_logging"),
        ):
            assert main() == 0
            mock_cmd.assert_called_once()
