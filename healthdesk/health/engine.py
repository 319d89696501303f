"""Check runner — collects checks from sources, executes them, aggregates.

One runner serves one session (an HTTP request or a CLI invocation). It owns
a fresh SessionContext, so registries never leak between sessions; only the
snapshot cache outlives it.

Failure containment differs per entry point:
  run()              — a raising check aborts the run (CheckExecutionError)
  run_category()     — each raising check becomes a Warning result
  run_single_check() — a raising check becomes a Warning result
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .aggregate import ResultAggregator
from .cache import CacheStore, ttl_to_minutes
from .checks import CheckContext, CheckSource, HealthCheck
from .errors import CheckExecutionError, ConfigurationError
from .models import HealthResult, HealthStatus, RunSnapshot
from .pipeline import CollectionPipeline
from .registry import CategoryRegistry, ProviderRegistry, SessionContext

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

CACHE_GROUP = "healthdesk"
CACHE_KEY = "healthcheck_results"


def failed_check_result(check: HealthCheck, exc: BaseException) -> HealthResult:
    """Warning result standing in for a check that raised."""
    return HealthResult(
        status=HealthStatus.WARNING,
        title=check.get_title(),
        description=f"Check failed: {exc}",
        slug=check.slug,
        category=check.category,
        provider=check.provider,
        docs_url=check.docs_url,
    )


class CheckRunner:
    """Runs checks and holds the aggregate snapshot for one session."""

    def __init__(
        self,
        sources: Sequence[CheckSource],
        context: CheckContext,
        cache: CacheStore | None = None,
        disabled_checks: Iterable[str] = (),
    ) -> None:
        self.context = context
        self.cache = cache
        self.session = SessionContext()
        self.pipeline = CollectionPipeline(sources, self.session, disabled_checks)
        self.snapshot = RunSnapshot()
        self.aggregator = ResultAggregator(self.snapshot, self.session.categories)

    @classmethod
    def from_settings(cls, settings: Settings, cache: CacheStore | None = None) -> "CheckRunner":
        """Build a runner for a new session from configuration."""
        from ..sources import build_sources

        cache = cache or CacheStore(settings.cache_db_path)
        context = CheckContext(settings=settings, db_path=Path(settings.cache_db_path))
        return cls(
            build_sources(settings),
            context,
            cache=cache,
            disabled_checks=settings.disabled_checks,
        )

    # ── Registries ────────────────────────────────────────────────────────

    @property
    def categories(self) -> CategoryRegistry:
        return self.session.categories

    @property
    def providers(self) -> ProviderRegistry:
        return self.session.providers

    def initialize(self) -> None:
        self.pipeline.initialize()

    def collect_checks(self) -> list[HealthCheck]:
        return self.pipeline.collect_checks()

    # ── Execution ─────────────────────────────────────────────────────────

    def run(self) -> None:
        """Run every collected check and replace the snapshot.

        A check that raises aborts the run with ``CheckExecutionError``.
        """
        self.snapshot.results.clear()
        self.snapshot.last_run = datetime.now(timezone.utc).isoformat()

        self.initialize()
        checks = self.collect_checks()
        logger.debug("Running %d checks", len(checks))

        for check in checks:
            try:
                result = check.run(self.context)
            except Exception as e:
                logger.error("Check %s raised during full run: %s", check.slug, e)
                raise CheckExecutionError(check.slug, e) from e
            self.snapshot.results.append(result)

        self.aggregator.sort()
        logger.info(
            "Health run complete: %d critical, %d warning, %d good",
            self.aggregator.critical_count,
            self.aggregator.warning_count,
            self.aggregator.good_count,
        )

    def run_single_check(self, slug: str) -> HealthResult | None:
        """Run the check with ``slug``; None when no such check is collected."""
        self.initialize()
        for check in self.collect_checks():
            if check.slug != slug:
                continue
            try:
                return check.run(self.context)
            except Exception as e:
                logger.warning("Check %s failed: %s", slug, e)
                return failed_check_result(check, e)
        return None

    def run_category(self, category: str) -> dict[str, dict[str, Any]]:
        """Run the checks of one category, containing failures per check."""
        self.initialize()
        results: dict[str, dict[str, Any]] = {}
        for check in self.collect_checks():
            if check.category != category:
                continue
            try:
                result = check.run(self.context)
            except Exception as e:
                logger.warning("Check %s failed: %s", check.slug, e)
                result = failed_check_result(check, e)
            results[result.slug] = result.to_dict()
        return results

    def get_metadata(self) -> dict[str, Any]:
        """Categories, providers and the check list, without running anything.

        Raises ``ConfigurationError`` when no checks are collected: that means
        every source is disabled or broken, not that the site is healthy.
        """
        self.initialize()
        checks = self.collect_checks()
        if not checks:
            raise ConfigurationError(
                "No health checks are available. Check that at least one check source is enabled."
            )
        return {
            "categories": {slug: c.to_dict() for slug, c in self.categories.all().items()},
            "providers": {slug: p.to_dict() for slug, p in self.providers.all().items()},
            "checks": [
                {"slug": c.slug, "category": c.category, "title": c.get_title()}
                for c in checks
            ],
        }

    # ── Snapshot views ────────────────────────────────────────────────────

    @property
    def results(self) -> list[HealthResult]:
        return self.snapshot.results

    @property
    def last_run(self) -> str | None:
        return self.snapshot.last_run

    def results_by_category(self) -> dict[str, list[HealthResult]]:
        return self.aggregator.group_by_category()

    def results_by_status(self) -> dict[str, list[HealthResult]]:
        return self.aggregator.group_by_status()

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastRun": self.snapshot.last_run,
            "summary": self.aggregator.summary(),
            "categories": {slug: c.to_dict() for slug, c in self.categories.all().items()},
            "providers": {slug: p.to_dict() for slug, p in self.providers.all().items()},
            "results": [r.to_dict() for r in self.snapshot.results],
        }

    # ── Cache ─────────────────────────────────────────────────────────────

    def run_with_cache(self, ttl: int | None = None) -> None:
        """Load the snapshot from cache, or run and cache it for ``ttl`` seconds.

        ``ttl`` of None or <= 0 bypasses the cache entirely.
        """
        if ttl is None or ttl <= 0 or self.cache is None:
            self.run()
            return

        cached = self.cache.get(CACHE_KEY, CACHE_GROUP)
        if cached is not None and self._load_snapshot(cached):
            logger.debug("Serving health snapshot from cache (lastRun=%s)", self.snapshot.last_run)
            return

        self.run()
        payload = {
            "results": [r.to_dict() for r in self.snapshot.results],
            "lastRun": self.snapshot.last_run,
        }
        self.cache.store(json.dumps(payload), CACHE_KEY, CACHE_GROUP, ttl_to_minutes(ttl))

    def _load_snapshot(self, raw: str) -> bool:
        """Decode a cached payload into the snapshot. False means treat as a miss."""
        try:
            data = json.loads(raw)
            if not isinstance(data, dict) or "results" not in data or "lastRun" not in data:
                raise ValueError("cache payload missing results/lastRun")
            if not isinstance(data["results"], list):
                raise ValueError("cache payload results is not a list")
            results = [HealthResult.from_dict(r) for r in data["results"]]
            last_run = data["lastRun"]
            if last_run is not None:
                datetime.fromisoformat(last_run)
        except (ValueError, TypeError) as e:
            logger.debug("Ignoring unreadable cache payload: %s", e)
            return False

        self.snapshot.results[:] = results
        self.snapshot.last_run = last_run
        # Registries still describe the categories the cached results use
        self.initialize()
        return True

    def get_stats_with_cache(self, ttl: int | None = None) -> dict[str, Any]:
        self.run_with_cache(ttl)
        return self.aggregator.stats()

    def clear_cache(self) -> None:
        """Purge every cached entry this engine owns (snapshot and stats)."""
        if self.cache is not None:
            self.cache.clean(CACHE_GROUP)

    def close(self) -> None:
        self.context.close()
