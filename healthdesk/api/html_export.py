"""Standalone HTML rendering of a completed run.

The page carries its own styles so it can be saved and opened offline.
Descriptions are already sanitized; every other value is escaped here.
"""

from __future__ import annotations

from datetime import datetime
from html import escape

from healthdesk.health.engine import CheckRunner

_STYLE = """
body { font-family: -apple-system, "Segoe UI", Roboto, Arial, sans-serif; color: #333;
       background: #f5f5f5; margin: 0; padding: 20px; line-height: 1.6; }
.container { max-width: 1200px; margin: 0 auto; background: #fff; box-shadow: 0 2px 4px rgba(0,0,0,.1); }
.header { background: #2c3e50; color: #fff; padding: 30px; }
.summary { display: grid; grid-template-columns: repeat(4, 1fr); gap: 20px; padding: 30px; background: #f8f9fa; }
.card { text-align: center; padding: 20px; background: #fff; border-radius: 4px; }
.card .n { font-size: 32px; font-weight: bold; }
.critical .n { color: #dc3545; } .warning .n { color: #ffc107; } .good .n { color: #28a745; }
.category { padding: 20px 30px; border-top: 1px solid #dee2e6; }
table { width: 100%; border-collapse: collapse; }
td { padding: 8px; border-bottom: 1px solid #eee; vertical-align: top; }
.badge { display: inline-block; padding: 2px 8px; border-radius: 3px; color: #fff; font-size: 12px; }
.badge.critical { background: #dc3545; } .badge.warning { background: #ffc107; color: #000; }
.badge.good { background: #28a745; }
.provider { color: #777; font-size: 12px; }
"""


def render_html_report(runner: CheckRunner, site_name: str, generated_at: datetime | None = None) -> str:
    generated_at = generated_at or datetime.now()
    summary = runner.aggregator.summary()

    cards = "".join(
        f'<div class="card {key}"><div class="n">{summary[key]}</div>{key.capitalize()}</div>'
        for key in ("critical", "warning", "good", "total")
    )

    sections: list[str] = []
    for slug, results in runner.results_by_category().items():
        category = runner.categories.get(slug)
        label = category.label if category else slug
        rows: list[str] = []
        for r in results:
            attribution = ""
            if r.provider != "core":
                provider = runner.providers.get(r.provider)
                attribution = f'<div class="provider">{escape(provider.name if provider else r.provider)}</div>'
            docs = f' <a href="{escape(r.docs_url)}">Docs</a>' if r.docs_url else ""
            rows.append(
                f'<tr><td><span class="badge {r.status.value}">{r.status.label}</span></td>'
                f"<td><strong>{escape(r.title)}</strong>{attribution}</td>"
                f"<td>{r.description}{docs}</td></tr>"
            )
        sections.append(
            f'<div class="category"><h2>{escape(label)}</h2><table>{"".join(rows)}</table></div>'
        )

    title = f"Health Check Report - {escape(site_name)}"
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en"><head><meta charset="UTF-8">'
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">'
        f"<title>{title}</title><style>{_STYLE}</style></head><body>"
        '<div class="container">'
        f'<div class="header"><h1>{title}</h1>'
        f'<div>Generated {escape(generated_at.strftime("%B %d, %Y at %H:%M"))}</div></div>'
        f'<div class="summary">{cards}</div>'
        f'{"".join(sections)}'
        "</div></body></html>\n"
    )
