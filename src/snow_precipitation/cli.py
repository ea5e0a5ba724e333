"""CLI: build the reconciled precipitation/snow series for a location and print it."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import UTC, date, datetime, timedelta

from rich.console import Console
from rich.table import Table

from .cache import TTLCache
from .config import load_settings
from .exceptions import ConfigError, InputError, WeatherDataError
from .gateways.frost import FrostGateway
from .gateways.locationforecast import LocationForecastGateway
from .gateways.nominatim import GeocodingGateway
from .log_setup import setup_logger
from .models import Coordinate, DateRange, SeriesReport
from .service import build_service

DEFAULT_PAST_DAYS = 7
DEFAULT_FUTURE_DAYS = 9


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse series CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Merge station history and forecast into an hourly snow series."
    )
    parser.add_argument("--lat", type=float, default=None, help="Latitude in decimal degrees.")
    parser.add_argument("--lon", type=float, default=None, help="Longitude in decimal degrees.")
    parser.add_argument(
        "--place", type=str, default=None, help="Place name to geocode instead of --lat/--lon."
    )
    parser.add_argument(
        "--start",
        type=date.fromisoformat,
        default=None,
        help=f"First day (YYYY-MM-DD). Default: today - {DEFAULT_PAST_DAYS} days.",
    )
    parser.add_argument(
        "--end",
        type=date.fromisoformat,
        default=None,
        help=f"Last day (YYYY-MM-DD). Default: today + {DEFAULT_FUTURE_DAYS} days.",
    )
    parser.add_argument(
        "--max-print", type=int, default=48, help="Number of series rows to print."
    )
    parser.add_argument("--json", action="store_true", help="Print the report as JSON.")
    return parser.parse_args(argv)


def _validate_cli_input(args: argparse.Namespace) -> tuple[Coordinate | None, DateRange]:
    if args.max_print <= 0:
        raise InputError("--max-print must be > 0.")
    if args.place and (args.lat is not None or args.lon is not None):
        raise InputError("Use either --place or --lat/--lon, not both.")

    coord: Coordinate | None = None
    if not args.place:
        if args.lat is None or args.lon is None:
            raise InputError("Missing location input: pass --lat and --lon, or --place.")
        if not (-90 <= args.lat <= 90):
            raise InputError(f"Invalid latitude {args.lat}; expected between -90 and 90.")
        if not (-180 <= args.lon <= 180):
            raise InputError(f"Invalid longitude {args.lon}; expected between -180 and 180.")
        coord = Coordinate(lat=args.lat, lon=args.lon)

    today = datetime.now(UTC).date()
    start = args.start or today - timedelta(days=DEFAULT_PAST_DAYS)
    end = args.end or today + timedelta(days=DEFAULT_FUTURE_DAYS)
    if end < start:
        raise InputError(f"--end {end} is before --start {start}.")
    return coord, DateRange(start=start, end=end)


def _resolve_place(geocoder: GeocodingGateway, place: str) -> Coordinate:
    matches = geocoder.search(place, limit=1)
    if not matches:
        raise InputError(f"No place found for {place!r}.")
    return matches[0].coordinate


def _fmt(value: float | None, spec: str = ".1f") -> str:
    return format(value, spec) if value is not None else "-"


def _print_report(console: Console, report: SeriesReport, max_print: int) -> None:
    station = report.selected_station
    station_str = f"{station.id} ({station.name or 'unnamed'})" if station else "none"
    console.print(
        f"Location=({report.coordinate.lat:.4f}, {report.coordinate.lon:.4f}) "
        f"range={report.date_range.start}..{report.date_range.end} station={station_str} "
        f"history={report.historical_status} forecast={report.forecast_status} "
        f"points={len(report.points)}"
    )
    if report.advisory:
        console.print(f"[yellow]{report.advisory}[/yellow]")
    if not report.points:
        return

    observed_mm = sum(point.precipitation for point in report.points if not point.is_forecast)
    forecast_mm = sum(point.precipitation for point in report.points if point.is_forecast)
    console.print(f"Precipitation observed={observed_mm:.1f} mm forecast={forecast_mm:.1f} mm")

    table = Table(title="Hourly Precipitation and Snow Depth")
    table.add_column("Time (UTC)")
    table.add_column("Source")
    table.add_column("Precip mm", justify="right")
    table.add_column("Snow cm", justify="right")
    table.add_column("Temp °C", justify="right")
    table.add_column("Wind m/s", justify="right")
    table.add_column("Dir °", justify="right")

    for point in report.points[:max_print]:
        table.add_row(
            point.time.astimezone(UTC).strftime("%Y-%m-%d %H:%M"),
            "forecast" if point.is_forecast else "observed",
            _fmt(point.precipitation),
            _fmt(point.snow_depth),
            _fmt(point.temperature),
            _fmt(point.wind_speed),
            _fmt(point.wind_direction, ".0f"),
        )
    console.print(table)
    if len(report.points) > max_print:
        console.print(f"... {len(report.points) - max_print} more rows (use --max-print).")


def main(argv: list[str] | None = None) -> int:
    """Run one series request and print the result."""
    args = parse_args(argv)
    console = Console()

    try:
        settings = load_settings()
    except ConfigError as exc:
        setup_logger().error("Configuration failure: %s", exc)
        return 2

    logger = setup_logger(level=settings.log_level)
    cache = TTLCache()
    try:
        coord, date_range = _validate_cli_input(args)
        with (
            FrostGateway(settings, logger, cache=cache) as frost,
            LocationForecastGateway(settings, logger, cache=cache) as forecast,
            GeocodingGateway(settings, logger, cache=cache) as geocoder,
        ):
            if coord is None:
                coord = _resolve_place(geocoder, args.place)
            service = build_service(settings, frost, forecast, logger=logger)
            report = service.fetch_series(coord, date_range)
    except InputError as exc:
        logger.error("Invalid input: %s", exc)
        return 3
    except WeatherDataError as exc:
        logger.error("Series request failed: %s", exc)
        return 4

    if args.json:
        console.print_json(json.dumps(report.model_dump(mode="json", by_alias=True)))
    else:
        _print_report(console, report, max_print=args.max_print)
    return 0


if __name__ == "__main__":
    sys.exit(main())
