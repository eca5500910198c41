#!/usr/bin/env python3
"""Command line interface for plantwatch.

Configuration comes from ``PLANTWATCH_*`` environment variables (and an
optional .env file); see :class:`plantwatch.config.PlantwatchConfig`.

Usage:
    plantwatch serve
    plantwatch plants --search north --status Working
    plantwatch day PLANT_ID --date 2025-07-22
    plantwatch export PLANT_ID --from 2025-07-20 --to 2025-07-22 --format csv xlsx
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

from plantwatch import __version__
from plantwatch.charts import convert_to_chart_data, format_power
from plantwatch.client import PlantClient
from plantwatch.config import PlantwatchConfig
from plantwatch.dates import parse_day_key, range_bounds
from plantwatch.devices import count_devices
from plantwatch.exceptions import PlantwatchError
from plantwatch.export import ExportConfig, ExportFormat, export_plant_data
from plantwatch.plants import filter_plants, paginate, plant_totals
from plantwatch.view import PlantDetailView


def _day(value: str) -> date:
    try:
        return parse_day_key(value)
    except ValueError as err:
        raise argparse.ArgumentTypeError(str(err)) from err


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="plantwatch",
        description="Solar plant telemetry dashboard tools.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--env-file",
        type=Path,
        help="Load environment variables from this file (default: ./.env if present)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the local dashboard server")
    serve.add_argument("--host", help="Bind address (overrides PLANTWATCH_HOST)")
    serve.add_argument("--port", type=int, help="Port (overrides PLANTWATCH_PORT)")

    plants = commands.add_parser("plants", help="List the configured owner's plants")
    plants.add_argument("--search", default="", help="Filter by uid or owner substring")
    plants.add_argument(
        "--status",
        default="all",
        choices=["all", "Working", "Error", "Maintenance"],
        help="Filter by status",
    )
    plants.add_argument("--page", type=int, default=1, help="Page number (12 plants per page)")

    day = commands.add_parser("day", help="Show one day of a plant's telemetry")
    day.add_argument("plant_id", help="Plant uid")
    day.add_argument("--date", type=_day, help="Day as YYYY-MM-DD (default: today)")

    export = commands.add_parser("export", help="Export telemetry to CSV/XLSX files")
    export.add_argument("plant_id", help="Plant uid")
    export.add_argument("--from", dest="from_date", type=_day, required=True, help="First day")
    export.add_argument("--to", dest="to_date", type=_day, help="Last day (default: --from)")
    export.add_argument(
        "--format",
        dest="formats",
        nargs="+",
        choices=[fmt.value for fmt in ExportFormat],
        default=[ExportFormat.CSV.value],
        help="Output formats",
    )
    export.add_argument(
        "--output", type=Path, default=Path("."), help="Output directory (default: .)"
    )

    return parser


def _client(config: PlantwatchConfig) -> PlantClient:
    return PlantClient(
        config.api_base_url,
        config.api_token,
        owner_id=config.owner_id,
        timeout=config.request_timeout,
    )


async def run_plants(args: argparse.Namespace, config: PlantwatchConfig) -> int:
    async with _client(config) as client:
        response = await client.get_plant_list()

    plants = filter_plants(response.plants, args.search, args.status)
    page = paginate(plants, args.page)
    totals = plant_totals(response.plants)

    print(f"{'UID':<38} {'OWNER':<24} {'STATUS':<12} DEVICES")
    for plant in page.items:
        print(f"{plant.uid:<38} {plant.owner:<24} {plant.status.value:<12} {plant.device_amount}")
    print(
        f"\nPage {page.page}/{page.total_pages} ({page.total_items} matching). "
        f"Total: {totals['total_plants']} plants, {totals['total_devices']} devices, "
        f"{totals['working']} working, {totals['error']} error, "
        f"{totals['maintenance']} maintenance"
    )
    return 0


async def run_day(args: argparse.Namespace, config: PlantwatchConfig) -> int:
    async with (
        _client(config) as client,
        PlantDetailView(
            client,
            args.plant_id,
            tz=config.tzinfo,
            offset_hours=config.display_offset_hours,
            time_format=config.time_format,
            initial_day=args.date,
        ) as view,
    ):
        if view.error:
            print(f"Error: {view.error}", file=sys.stderr)
            return 1

        data = view.data
        points = view.chart_data
        print(f"Plant {args.plant_id} on {view.selected_day}")
        if data is not None:
            metadata = data.plant_metadata
            print(f"  Owner: {metadata.owner}  Status: {metadata.status.value}")
            print(f"  Devices: {count_devices(data)}")
        print(f"  Samples: {len(points)}")
        if points:
            print(f"  From {points[0].time} to {points[-1].time}")
        for series, stats in view.power_stats.items():
            print(
                f"  {series:<8} max {format_power(stats['max']):>10}  "
                f"min {format_power(stats['min']):>10}  avg {format_power(stats['avg']):>10}"
            )
    return 0


async def run_export(args: argparse.Namespace, config: PlantwatchConfig) -> int:
    export_config = ExportConfig(
        args.from_date, args.to_date or args.from_date, set(args.formats)
    )
    tz = config.tzinfo
    start, end = range_bounds(export_config.from_date, export_config.to_date, tz)

    async with _client(config) as client:
        view = await client.get_plant_view(args.plant_id, start, end)

    points = convert_to_chart_data(
        view.aggregated_data_snapshots,
        tz,
        offset_hours=config.display_offset_hours,
        time_format=config.time_format,
    )
    files = export_plant_data(
        points,
        export_config,
        args.plant_id,
        tz,
        offset_hours=config.display_offset_hours,
        time_format=config.time_format,
    )
    for export_file in files:
        print(export_file.save(args.output))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = PlantwatchConfig.from_env(args.env_file)
        config.validate()
    except PlantwatchError as err:
        print(f"Configuration error: {err}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "serve":
            from plantwatch.server import run_server

            if args.host:
                config.host = args.host
            if args.port:
                config.port = args.port
            config.require_server()
            run_server(config)
            return 0
        if args.command == "plants":
            return asyncio.run(run_plants(args, config))
        if args.command == "day":
            return asyncio.run(run_day(args, config))
        if args.command == "export":
            return asyncio.run(run_export(args, config))
    except (PlantwatchError, ValueError) as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
