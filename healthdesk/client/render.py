"""Report rendering — filter rules into section views, then a rich console.

Visibility rules:
- the category filter limits the report to one category
- categories without checks are skipped
- a category whose results all fail the status filter is hidden
- with a search term, a category with no matching result is hidden
- inside a visible category, non-matching rows are simply left out
- pending rows only show while no status or search filter is active
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .filters import FilterState, ReportFilters
from .orchestrator import ReportOrchestrator, ReportState

STATUS_STYLE = {"critical": "bold red", "warning": "bold yellow", "good": "green"}
_TAG_RE = re.compile(r"<[^>]+>")


@dataclass
class RowView:
    slug: str
    title: str
    status: str | None  # None = pending
    description: str = ""
    provider: str = "core"
    action_url: str | None = None
    docs_url: str | None = None


@dataclass
class SectionView:
    slug: str
    label: str
    icon: str
    border_class: str
    counts: dict[str, int]
    collapsed: bool = False
    rows: list[RowView] = field(default_factory=list)


def matches_status(result: dict[str, Any], status_filter: str) -> bool:
    if not status_filter:
        return True
    if status_filter == "hide_good":
        return result.get("status") != "good"
    return result.get("status") == status_filter


def matches_search(result: dict[str, Any], search: str) -> bool:
    if not search:
        return True
    return any(
        search in str(result.get(key, "")).lower() for key in ("title", "description", "slug")
    )


def build_sections(
    report: ReportOrchestrator,
    filters: FilterState,
    filter_store: ReportFilters | None = None,
) -> list[SectionView]:
    search = filters.search.lower().strip()
    status_filter = filters.status
    sections: list[SectionView] = []

    for category in report.sorted_categories():
        slug = category["slug"]
        if filters.category and slug != filters.category:
            continue

        category_checks = report.checks_in(slug)
        if not category_checks:
            continue

        category_results = report.results_in(slug)
        filtered = [r for r in category_results if matches_status(r, status_filter)]
        if status_filter and not filtered and category_results:
            continue
        if search:
            filtered = [r for r in filtered if matches_search(r, search)]
            if not filtered:
                continue

        rows: list[RowView] = []
        for check in category_checks:
            result = report.results.get(check["slug"])
            if result is None:
                if status_filter or search:
                    continue
                rows.append(RowView(slug=check["slug"], title=check.get("title", check["slug"]), status=None))
                continue
            if not (matches_status(result, status_filter) and matches_search(result, search)):
                continue
            rows.append(RowView(
                slug=check["slug"],
                title=result.get("title", check["slug"]),
                status=result.get("status"),
                description=result.get("description", ""),
                provider=result.get("provider", "core"),
                action_url=result.get("actionUrl"),
                docs_url=result.get("docsUrl"),
            ))

        sections.append(SectionView(
            slug=slug,
            label=category.get("label", slug),
            icon=category.get("icon", ""),
            border_class=report.border_class(slug),
            counts=report.category_counts(slug),
            collapsed=filter_store.is_collapsed(slug) if filter_store else False,
            rows=rows,
        ))
    return sections


def plain_text(description: str) -> str:
    """Terminal form of a sanitized HTML description."""
    text = re.sub(r"<br\s*/?>|</p>|</li>", "\n", description)
    text = _TAG_RE.sub("", text)
    return (
        text.replace("&lt;", "<").replace("&gt;", ">").replace("&amp;", "&").strip()
    )


# ── Console output ───────────────────────────────────────────────────────────


def render_report(
    console: Console,
    report: ReportOrchestrator,
    filters: ReportFilters,
) -> None:
    if report.state == ReportState.ERROR:
        console.print(Panel(
            f"[bold]{escape(report.error or '')}[/bold]\nRun the report again to retry.",
            title="Health check failed",
            border_style="red",
        ))
        return

    counts = report.summary_counts()
    console.print(Panel.fit(
        f"[bold red]{counts['critical']} critical[/bold red]   "
        f"[bold yellow]{counts['warning']} warning[/bold yellow]   "
        f"[green]{counts['good']} good[/green]"
        + (f"\n[dim]Last checked: {report.last_checked}[/dim]" if report.last_checked else ""),
        title="Site health",
    ))

    for section in build_sections(report, filters.state, filters):
        badge = " ".join(
            f"[{STATUS_STYLE[s]}]{n} {s}[/{STATUS_STYLE[s]}]"
            for s, n in section.counts.items() if n
        )
        if section.collapsed:
            console.print(f"[bold]▸ {escape(section.label)}[/bold]  {badge}")
            continue

        table = Table(title=f"{escape(section.label)}  {badge}", title_justify="left", expand=True)
        table.add_column("Status", width=10)
        table.add_column("Check", ratio=1)
        table.add_column("Details", ratio=2)
        for row in section.rows:
            if row.status is None:
                table.add_row("[dim]pending[/dim]", escape(row.title), "[dim]Running checks...[/dim]")
                continue
            style = STATUS_STYLE.get(row.status, "white")
            title = escape(row.title)
            if row.provider != "core":
                provider = report.providers.get(row.provider, {})
                title += f" [dim]({escape(provider.get('name', row.provider))})[/dim]"
            details = escape(plain_text(row.description))
            if row.docs_url:
                details += f"\n[dim]Docs: {escape(row.docs_url)}[/dim]"
            table.add_row(f"[{style}]{row.status}[/{style}]", title, details)
        console.print(table)
