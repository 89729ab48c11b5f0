"""
Command-line interface for the application.

This module provides the main entry point for the CLI.
"""

from __future__ import annotations

import argparse
import sys

from rivr_offline import __version__
from rivr_offline.config import configure_logging, get_settings
from rivr_offline.container import Container, build_container
from rivr_offline.errors import Failure
from rivr_offline.flows.sync import sync_favorites
from rivr_offline.schemas import BoundingBox, Favorite, ForecastType
from rivr_offline.storage.offline import CACHE_TYPES


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="rivr-offline",
        description="Offline cache and sync for river flow forecasts and map tiles",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("info", help="Show application info")
    subparsers.add_parser("stats", help="Show offline cache statistics")

    cleanup_parser = subparsers.add_parser("cleanup", help="Trim the cache to its size budget")
    cleanup_parser.add_argument(
        "--max-mb",
        type=float,
        default=None,
        help="Size budget in MB (default: max_cache_size_mb from settings)",
    )

    clear_parser = subparsers.add_parser("clear", help="Clear cached data")
    clear_parser.add_argument("type", choices=CACHE_TYPES, help="What to clear")

    forecast_parser = subparsers.add_parser("forecast", help="Show a reach's forecast")
    forecast_parser.add_argument("reach_id", help="NWM reach ID")
    forecast_parser.add_argument(
        "--type",
        choices=[t.value for t in ForecastType],
        default=ForecastType.SHORT_RANGE.value,
        help="Forecast series (default: short_range)",
    )
    forecast_parser.add_argument("--refresh", action="store_true", help="Ignore fresh cached data")
    forecast_parser.add_argument("--offline", action="store_true", help="Serve from cache only")

    sync_parser = subparsers.add_parser("sync", help="Refresh favorites and trim the cache")
    sync_parser.add_argument("--user", default=None, help="User ID (default: user_id from settings)")

    fav_parser = subparsers.add_parser("favorites", help="Manage favorite rivers")
    fav_sub = fav_parser.add_subparsers(dest="action", required=True)
    fav_sub.add_parser("list", help="List favorites")
    add_parser = fav_sub.add_parser("add", help="Add a favorite")
    add_parser.add_argument("station_id")
    add_parser.add_argument("name")
    remove_parser = fav_sub.add_parser("remove", help="Remove a favorite")
    remove_parser.add_argument("station_id")

    estimate_parser = subparsers.add_parser(
        "estimate-region", help="Estimate tile count and size of a map region"
    )
    estimate_parser.add_argument("bounds", help="south,west,north,east")
    estimate_parser.add_argument("--min-zoom", type=int, default=8)
    estimate_parser.add_argument("--max-zoom", type=int, default=14)

    return parser


def get_container() -> Container:
    return build_container(get_settings())


def cmd_info(_args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    settings = get_settings()
    print(f"Application: {settings.app_name}")
    print(f"Version: {__version__}")
    print(f"Environment: {settings.app_env}")
    print(f"Data directory: {settings.data_dir}")
    print(f"Debug: {settings.debug}")
    for problem in settings.validate_config():
        print(f"Warning: {problem}")
    return 0


def cmd_stats(_args: argparse.Namespace) -> int:
    """Handle the 'stats' command."""
    container = get_container()
    stats = container.storage.get_cache_stats()
    print(f"Stations: {stats.station_count}")
    print(f"Forecasts: {stats.forecast_count}")
    print(f"Return periods: {stats.return_period_count}")
    print(f"Map tiles: {stats.tile_count}")
    print(f"Map regions: {stats.region_count}")
    print(f"Size: {stats.size_mb} MB ({stats.size_bytes} bytes)")
    return 0


def cmd_cleanup(args: argparse.Namespace) -> int:
    """Handle the 'cleanup' command."""
    container = get_container()
    budget = args.max_mb if args.max_mb is not None else container.settings.max_cache_size_mb
    expired = container.cache.clean_expired()
    stats = container.storage.perform_cache_cleanup(budget)
    print(f"Removed {expired} expired cache entries")
    print(f"Cache is {stats.size_mb} MB (budget {budget:g} MB)")
    return 0


def cmd_clear(args: argparse.Namespace) -> int:
    """Handle the 'clear' command."""
    container = get_container()
    container.storage.clear_cache_by_type(args.type)
    if args.type == "all":
        container.cache.clear_all()
    print(f"Cleared {args.type}")
    return 0


def cmd_forecast(args: argparse.Namespace) -> int:
    """Handle the 'forecast' command."""
    container = get_container()
    result = container.forecasts.get_forecast(
        args.reach_id, ForecastType(args.type), force_refresh=args.refresh, cache_only=args.offline
    )
    if isinstance(result, Failure):
        print(f"Error: {result.message}", file=sys.stderr)
        return 1

    source = "cache" if result.from_cache else "network"
    print(f"{result.forecast_type.display_name} forecast for {result.reach_id} ({source})")
    for f in result.forecasts:
        print(f"  {f.valid_time.isoformat()}  {f.flow:.2f}")
    if not result.forecasts:
        print("  (no data)")
    return 0


def cmd_sync(args: argparse.Namespace) -> int:
    """Handle the 'sync' command."""
    result = sync_favorites(user_id=args.user)
    print(f"Synced {result['favorites']} favorites ({len(result['failed'])} failed)")
    return 1 if result["failed"] else 0


def cmd_favorites(args: argparse.Namespace) -> int:
    """Handle the 'favorites' command."""
    container = get_container()
    user_id = container.settings.user_id
    repo = container.favorites

    if args.action == "add":
        result = repo.add_favorite(Favorite(station_id=args.station_id, name=args.name, user_id=user_id))
    elif args.action == "remove":
        result = repo.remove_favorite(user_id, args.station_id)
    else:
        result = repo.get_favorites(user_id)

    if isinstance(result, Failure):
        print(f"Error: {result.message}", file=sys.stderr)
        return 1

    if args.action == "list":
        for fav in result:
            print(f"{fav.position:>3}  {fav.station_id}  {fav.name}")
    elif args.action == "add":
        print(f"Added {result.name} ({result.station_id})")
    elif result:
        print(f"Removed {args.station_id}")
    else:
        print(f"{args.station_id} is not a favorite", file=sys.stderr)
        return 1
    return 0


def cmd_estimate_region(args: argparse.Namespace) -> int:
    """Handle the 'estimate-region' command."""
    try:
        bounds = BoundingBox.parse(args.bounds)
    except ValueError as e:
        print(f"Error: invalid bounds: {e}", file=sys.stderr)
        return 1
    if args.min_zoom > args.max_zoom:
        print("Error: --min-zoom must not exceed --max-zoom", file=sys.stderr)
        return 1

    estimate = get_container().tiles.estimate_region_size(bounds, args.min_zoom, args.max_zoom)
    print(f"Tiles: {estimate.tile_count}")
    print(f"Estimated size: {estimate.size_mb:.1f} MB")
    return 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    settings = get_settings()
    if args.debug:
        settings.debug = True
    configure_logging(settings)

    commands = {
        "info": cmd_info,
        "stats": cmd_stats,
        "cleanup": cmd_cleanup,
        "clear": cmd_clear,
        "forecast": cmd_forecast,
        "sync": cmd_sync,
        "favorites": cmd_favorites,
        "estimate-region": cmd_estimate_region,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
