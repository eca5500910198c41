"""Telemetry proxy and export routes under ``/api/plants``.

The proxy keeps the upstream bearer token on the server. Upstream failures
are reported as 502 with ``{"error": ..., "details": ...}``. A missing owner
id gets the same body with status 500.
"""

from __future__ import annotations

import logging
from datetime import date

from aiohttp import web

from ...charts import convert_to_chart_data
from ...dates import parse_day_key, range_bounds
from ...exceptions import ConfigurationError, ExportValidationError, PlantwatchError
from ...export import ExportConfig, ExportFormat, export_plant_data
from ..keys import CONFIG_KEY, PLANT_CLIENT_KEY

_LOGGER = logging.getLogger(__name__)


def _upstream_error(what: str, err: Exception) -> web.Response:
    _LOGGER.error("Error fetching %s: %s", what, err)
    return web.json_response(
        {"error": f"Failed to fetch {what}", "details": str(err)}, status=502
    )


def _bad_request(message: str) -> web.Response:
    return web.json_response({"error": message}, status=400)


async def plant_list(request: web.Request) -> web.Response:
    """Proxy the configured owner's plant list."""
    client = request.app[PLANT_CLIENT_KEY]
    try:
        result = await client.get_plant_list()
    except ConfigurationError as err:
        _LOGGER.error("Cannot list plants: %s", err)
        return web.json_response(
            {"error": "Failed to fetch plant list", "details": str(err)}, status=500
        )
    except PlantwatchError as err:
        return _upstream_error("plant list", err)
    return web.json_response(result.model_dump(mode="json"))


async def plant_view(request: web.Request) -> web.Response:
    """Proxy a plant view for ``start``..``end`` (Unix seconds)."""
    plant_id = request.match_info["plant_id"]
    start = request.query.get("start")
    end = request.query.get("end")
    if not start or not end:
        return _bad_request("start and end parameters are required")
    try:
        start_ts, end_ts = int(start), int(end)
    except ValueError:
        return _bad_request("start and end must be Unix timestamps in seconds")
    if end_ts < start_ts:
        return _bad_request("end must not be before start")

    client = request.app[PLANT_CLIENT_KEY]
    try:
        result = await client.get_plant_view(plant_id, start_ts, end_ts)
    except PlantwatchError as err:
        return _upstream_error("plant view", err)
    return web.json_response(result.model_dump(mode="json"))


def _parse_day(request: web.Request, name: str) -> date:
    value = request.query.get(name)
    if not value:
        raise ExportValidationError(f"'{name}' parameter is required (YYYY-MM-DD)")
    try:
        return parse_day_key(value)
    except ValueError as err:
        raise ExportValidationError(str(err)) from err


async def export_plant_view(request: web.Request) -> web.Response:
    """Download a plant's telemetry for a date range as CSV or XLSX."""
    plant_id = request.match_info["plant_id"]
    config = request.app[CONFIG_KEY]
    tz = config.tzinfo

    try:
        from_day = _parse_day(request, "from")
        to_day = _parse_day(request, "to") if request.query.get("to") else from_day
        fmt = ExportFormat(request.query.get("format", ExportFormat.CSV.value).lower())
        export_config = ExportConfig(from_day, to_day, {fmt})
    except (ExportValidationError, ValueError) as err:
        return _bad_request(str(err))

    start, end = range_bounds(from_day, to_day, tz)
    client = request.app[PLANT_CLIENT_KEY]
    try:
        view = await client.get_plant_view(plant_id, start, end)
    except PlantwatchError as err:
        return _upstream_error("plant view", err)

    points = convert_to_chart_data(
        view.aggregated_data_snapshots,
        tz,
        offset_hours=config.display_offset_hours,
        time_format=config.time_format,
    )
    try:
        (export_file,) = export_plant_data(
            points,
            export_config,
            plant_id,
            tz,
            offset_hours=config.display_offset_hours,
            time_format=config.time_format,
        )
    except ExportValidationError as err:
        return _bad_request(str(err))

    return web.Response(
        body=export_file.content,
        headers={
            "Content-Type": export_file.media_type,
            "Content-Disposition": f'attachment; filename="{export_file.filename}"',
        },
    )


def setup_plant_routes(app: web.Application, prefix: str = "/api/plants") -> None:
    """Register the proxy and export routes."""
    app.router.add_get(f"{prefix}/plant_list", plant_list)
    app.router.add_get(f"{prefix}/plant_view/{{plant_id}}", plant_view)
    app.router.add_get(f"{prefix}/plant_view/{{plant_id}}/export", export_plant_view)


__all__ = ["setup_plant_routes"]
