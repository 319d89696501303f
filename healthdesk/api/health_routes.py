"""API routes for the health report.

Endpoints:
  GET  /api/health/metadata       — categories, providers, check list (no execution)
  POST /api/health/category       — run one category's checks (category in query or form body)
  GET  /api/health/check          — run a single check (?slug=...)
  GET  /api/health/stats          — summary counts (?cache=1&cache_ttl=900)
  GET  /api/health/run            — full run, sorted results + summary
  GET  /api/health/export         — full run as a downloadable JSON report
  GET  /api/health/export/html    — full run as a standalone HTML report
  POST /api/health/cache/clear    — purge the snapshot cache

Every response uses the same envelope: {success, message, data}.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse

from healthdesk.api.html_export import render_html_report
from healthdesk.health.engine import CheckRunner
from healthdesk.health.errors import CheckExecutionError, ConfigurationError

logger = logging.getLogger(__name__)

health_router = APIRouter(prefix="/health", tags=["health"])


# ── Helpers ──────────────────────────────────────────────────────────────────


def get_runner(request: Request) -> Iterator[CheckRunner]:
    """A fresh runner per request — registries never outlive the session."""
    runner = CheckRunner.from_settings(request.app.state.settings, cache=request.app.state.cache)
    try:
        yield runner
    finally:
        runner.close()


def envelope(data: Any = None, message: str | None = None) -> dict[str, Any]:
    return {"success": True, "message": message, "data": data}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "data": None},
    )


# ── Endpoints ────────────────────────────────────────────────────────────────


@health_router.get("/metadata")
def metadata(runner: CheckRunner = Depends(get_runner)) -> Any:
    """Everything the report page needs to draw its scaffolding."""
    try:
        return envelope(runner.get_metadata())
    except ConfigurationError as e:
        logger.error("Metadata unavailable: %s", e)
        return error_response(500, str(e))


async def category_param(request: Request) -> str:
    """``category`` from the query string, else from a form-encoded body."""
    category = request.query_params.get("category", "")
    if category:
        return category
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        value = form.get("category", "")
        return value if isinstance(value, str) else ""
    return ""


@health_router.post("/category")
def run_category(
    category: str = Depends(category_param),
    runner: CheckRunner = Depends(get_runner),
) -> Any:
    """Run every check in one category; failing checks come back as warnings."""
    if not category:
        return error_response(400, "Missing category")
    results = runner.run_category(category)
    return envelope({"category": category, "results": results})


@health_router.get("/check")
def run_check(slug: str = "", runner: CheckRunner = Depends(get_runner)) -> Any:
    """Run a single check by slug."""
    if not slug:
        return error_response(400, "Missing check slug")
    result = runner.run_single_check(slug)
    if result is None:
        return error_response(404, f"Check not found: {slug}")
    return envelope(result.to_dict())


@health_router.get("/stats")
def stats(
    cache: int = 0,
    cache_ttl: int = 900,
    runner: CheckRunner = Depends(get_runner),
) -> Any:
    """Summary counts, optionally served from the snapshot cache."""
    try:
        if cache == 1 and cache_ttl > 0:
            data = runner.get_stats_with_cache(cache_ttl)
        else:
            runner.run()
            data = runner.aggregator.stats()
    except CheckExecutionError as e:
        return error_response(500, str(e))
    return envelope(data)


@health_router.get("/run")
def run_all(runner: CheckRunner = Depends(get_runner)) -> Any:
    """Full run: summary, registries and sorted results."""
    try:
        runner.run()
    except CheckExecutionError as e:
        return error_response(500, str(e))
    return envelope(runner.to_dict())


@health_router.get("/export")
def export_report(runner: CheckRunner = Depends(get_runner)) -> Any:
    """Full report as a JSON attachment."""
    try:
        runner.run()
    except CheckExecutionError as e:
        return error_response(500, str(e))
    filename = f"health-report-{date.today().isoformat()}.json"
    return JSONResponse(
        content=runner.to_dict(),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@health_router.get("/export/html")
def export_html_report(request: Request, runner: CheckRunner = Depends(get_runner)) -> Any:
    """Full report as a standalone HTML attachment."""
    try:
        runner.run()
    except CheckExecutionError as e:
        return error_response(500, str(e))
    filename = f"health-report-{date.today().isoformat()}.html"
    return HTMLResponse(
        content=render_html_report(runner, request.app.state.settings.site_name),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@health_router.post("/cache/clear")
def clear_cache(runner: CheckRunner = Depends(get_runner)) -> Any:
    runner.clear_cache()
    return {"success": True, "message": "Health check cache cleared", "data": None}
