"""Entry point for healthdesk — `healthdesk` console script."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

import uvicorn
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from healthdesk.client.api import HealthApiClient
from healthdesk.client.filters import LocalStore, ReportFilters
from healthdesk.client.orchestrator import ReportOrchestrator, ReportState
from healthdesk.client.render import STATUS_STYLE, plain_text, render_report
from healthdesk.config import settings
from healthdesk.health.engine import CheckRunner
from healthdesk.health.errors import HealthdeskError

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)


def run_server() -> None:
    """Start the FastAPI server."""
    console.print(Panel(
        f"Starting healthdesk API on {settings.api_host}:{settings.api_port}",
        style="bold green",
    ))
    if not settings.api_token:
        console.print("[yellow]WARNING: No API_TOKEN set. All requests will be accepted without auth.[/yellow]")
    uvicorn.run(
        "healthdesk.api.server:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


def run_local(as_json: bool, ttl: int) -> int:
    """Run every check in-process and print the sorted report."""
    runner = CheckRunner.from_settings(settings)
    try:
        with console.status("[bold green]Running health checks..."):
            runner.run_with_cache(ttl)
    except HealthdeskError as e:
        console.print(f"[bold red]{escape(str(e))}[/bold red]")
        return 1
    finally:
        runner.close()

    if as_json:
        print(json.dumps(runner.to_dict(), indent=2))
        return 0

    for category, results in runner.results_by_category().items():
        meta = runner.categories.get(category)
        table = Table(title=meta.label if meta else category, title_justify="left", expand=True)
        table.add_column("Status", width=10)
        table.add_column("Check", ratio=1)
        table.add_column("Details", ratio=2)
        for r in results:
            style = STATUS_STYLE[r.status.value]
            table.add_row(f"[{style}]{r.status.value}[/{style}]", escape(r.title), escape(plain_text(r.description)))
        console.print(table)

    summary = runner.aggregator.summary()
    console.print(
        f"\n[dim]{summary['critical']} critical / {summary['warning']} warning / "
        f"{summary['good']} good | last run {runner.last_run}[/dim]"
    )
    return 1 if summary["critical"] else 0


def run_stats(ttl: int) -> int:
    runner = CheckRunner.from_settings(settings)
    try:
        stats = runner.get_stats_with_cache(ttl)
    except HealthdeskError as e:
        console.print(f"[bold red]{escape(str(e))}[/bold red]")
        return 1
    finally:
        runner.close()
    print(json.dumps(stats, indent=2))
    return 0


def clear_cache() -> int:
    runner = CheckRunner.from_settings(settings)
    try:
        runner.clear_cache()
    finally:
        runner.close()
    console.print("[green]Health check cache cleared[/green]")
    return 0


async def _report(url: str, updates: dict[str, str], collapse: list[str], expand: list[str]) -> int:
    filters = ReportFilters(LocalStore(settings.client_state_file), url)
    if updates:
        filters.update(**updates)
    for slug in collapse:
        filters.set_collapsed(slug, True)
    for slug in expand:
        filters.set_collapsed(slug, False)

    def progress(report: ReportOrchestrator, category: str | None) -> None:
        if category and report.state == ReportState.RUNNING_CATEGORIES:
            counts = report.category_counts(category)
            console.print(
                f"[dim]{category}: {counts['critical']} critical, "
                f"{counts['warning']} warning, {counts['good']} good[/dim]"
            )

    async with HealthApiClient(
        settings.client_base_url, token=settings.api_token, timeout=settings.client_timeout,
    ) as api:
        report = ReportOrchestrator(api, on_update=progress)
        await report.run()

    render_report(console, report, filters)
    console.print(f"[dim]{filters.url}[/dim]")
    return 1 if report.state == ReportState.ERROR else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="healthdesk site health checks")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Start the API server")

    run_parser = sub.add_parser("run", help="Run all checks in-process")
    run_parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    run_parser.add_argument("--ttl", type=int, default=0, help="Serve from cache for this many seconds")

    stats_parser = sub.add_parser("stats", help="Print summary counts")
    stats_parser.add_argument("--ttl", type=int, default=settings.cache_ttl)

    sub.add_parser("clear-cache", help="Purge the snapshot cache")

    report_parser = sub.add_parser("report", help="Fetch a report from a running server")
    report_parser.add_argument("url", nargs="?", default="healthdesk://report", help="Report URL with filter params")
    report_parser.add_argument("--search")
    report_parser.add_argument("--status", choices=["", "critical", "warning", "good", "hide_good"])
    report_parser.add_argument("--category")
    report_parser.add_argument("--collapse", action="append", default=[], metavar="CATEGORY")
    report_parser.add_argument("--expand", action="append", default=[], metavar="CATEGORY")

    args = parser.parse_args()

    if args.command == "serve":
        run_server()
    elif args.command == "run":
        sys.exit(run_local(args.json, args.ttl))
    elif args.command == "stats":
        sys.exit(run_stats(args.ttl))
    elif args.command == "clear-cache":
        sys.exit(clear_cache())
    elif args.command == "report":
        updates = {
            name: value
            for name in ("search", "status", "category")
            if (value := getattr(args, name)) is not None
        }
        sys.exit(asyncio.run(_report(args.url, updates, args.collapse, args.expand)))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
