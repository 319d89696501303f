"""Built-in ``core`` source — the standard categories and a few baseline checks.

Each check is a single threshold rule over a setting, the interpreter, or one
SQL aggregate against the session database.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from ..health.checks import CheckContext, HealthCheck
from ..health.models import Category, HealthResult, Provider

if TYPE_CHECKING:
    from ..config import Settings

CORE_CATEGORIES = [
    Category(slug="system", label="System & Hosting", icon="fa-server", sort_order=10),
    Category(slug="database", label="Database", icon="fa-database", sort_order=20),
    Category(slug="security", label="Security", icon="fa-shield-alt", sort_order=30),
    Category(slug="users", label="Users", icon="fa-users", sort_order=40),
    Category(slug="extensions", label="Extensions", icon="fa-puzzle-piece", sort_order=50),
    Category(slug="performance", label="Performance", icon="fa-tachometer-alt", sort_order=60),
    Category(slug="seo", label="SEO", icon="fa-search", sort_order=70),
    Category(slug="content", label="Content", icon="fa-file-alt", sort_order=80),
]


# ── Checks ───────────────────────────────────────────────────────────────────


class PythonVersionCheck(HealthCheck):
    slug = "system.python_version"
    category = "system"
    title = "Python Version"

    def run(self, context: CheckContext) -> HealthResult:
        version = ".".join(str(v) for v in sys.version_info[:3])
        if sys.version_info < (3, 10):
            return self.critical(f"Python {version} is no longer supported. Upgrade to 3.12 or later.")
        if sys.version_info < (3, 12):
            return self.warning(f"Python {version} is supported but ageing. Plan an upgrade to 3.12 or later.")
        return self.good(f"Python {version}.")


class DebugModeCheck(HealthCheck):
    slug = "security.debug_mode"
    category = "security"
    title = "Debug Mode"

    def run(self, context: CheckContext) -> HealthResult:
        if context.settings.debug:
            return self.warning(
                "Debug mode is <strong>enabled</strong>. It can expose internal details and should be off in production."
            )
        return self.good("Debug mode is disabled.")


class ApiTokenCheck(HealthCheck):
    slug = "security.api_token"
    category = "security"
    title = "API Authentication"

    def run(self, context: CheckContext) -> HealthResult:
        token = context.settings.api_token
        if not token:
            return self.warning("No API token is configured. Every request to the API is accepted.")
        if len(token) < 16:
            return self.warning(f"The API token is only {len(token)} characters. Use at least 16.")
        return self.good("The API requires a token.")


class CacheTtlCheck(HealthCheck):
    slug = "performance.cache_ttl"
    category = "performance"
    title = "Report Caching"

    def run(self, context: CheckContext) -> HealthResult:
        ttl = context.settings.cache_ttl
        if ttl <= 0:
            return self.warning("Report caching is disabled. Every summary request runs all checks.")
        if ttl > 86_400:
            return self.warning(f"Cached reports live for {ttl // 3600} hours and may hide new problems.")
        return self.good(f"Reports are cached for {max(1, ttl // 60)} minute(s).")


class DatabaseIntegrityCheck(HealthCheck):
    slug = "database.integrity"
    category = "database"
    title = "Database Integrity"

    def run(self, context: CheckContext) -> HealthResult:
        row = context.get_db_conn().execute("PRAGMA integrity_check").fetchone()
        verdict = row[0] if row else "no result"
        if verdict != "ok":
            return self.critical(f"SQLite integrity check reported: <code>{verdict}</code>")
        return self.good("SQLite integrity check passed.")


class CacheEntriesCheck(HealthCheck):
    slug = "database.cache_entries"
    category = "database"
    title = "Cache Size"

    max_entries = 1000

    def run(self, context: CheckContext) -> HealthResult:
        row = context.get_db_conn().execute("SELECT COUNT(*) FROM cache_entries").fetchone()
        count = int(row[0])
        if count > self.max_entries:
            return self.warning(f"{count} cache entries stored. Clear the cache to reclaim space.")
        return self.good(f"{count} cache entr{'y' if count == 1 else 'ies'} stored.")


CORE_CHECKS: list[type[HealthCheck]] = [
    PythonVersionCheck,
    DatabaseIntegrityCheck,
    CacheEntriesCheck,
    DebugModeCheck,
    ApiTokenCheck,
    CacheTtlCheck,
]


# ── Source ───────────────────────────────────────────────────────────────────


class CoreSource:
    """Registers the core categories and the baseline checks.

    The core provider itself is pre-registered by the ProviderRegistry.
    """

    name = "core"

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings

    def collect_providers(self) -> list[Provider]:
        return []

    def collect_categories(self) -> list[Category]:
        return list(CORE_CATEGORIES)

    def collect_checks(self) -> list[HealthCheck]:
        return [cls() for cls in CORE_CHECKS]
