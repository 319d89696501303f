"""Report orchestrator — fetches metadata once, then runs categories concurrently.

One request per category (not per check) is issued at once, with no
concurrency limit. Results merge into local state as each response arrives,
so counts and category badges update incrementally.

State machine:
  idle → loading_metadata → running_categories → rendered
  error is reachable from any state; retry() goes back to loading_metadata.

Merge guard: every run has an epoch and every request a sequence number.
A response from a superseded run, or older than what was last merged for a
slug, is dropped.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .api import HealthApiClient, HealthApiError, MetadataFetchError

logger = logging.getLogger(__name__)

FALLBACK_CATEGORY = "system"


class ReportState(str, Enum):
    IDLE = "idle"
    LOADING_METADATA = "loading_metadata"
    RUNNING_CATEGORIES = "running_categories"
    RENDERED = "rendered"
    ERROR = "error"


def placeholder_result(slug: str, category: str, description: str, title: str | None = None) -> dict[str, Any]:
    """Client-side warning row for a check whose result could not be fetched."""
    return {
        "slug": slug,
        "status": "warning",
        "title": title or slug,
        "description": description,
        "category": category,
        "provider": "core",
        "actionUrl": None,
        "docsUrl": None,
    }


class ReportOrchestrator:
    """Drives one report page: metadata, category fan-out, incremental merge."""

    def __init__(
        self,
        api: HealthApiClient,
        on_update: Callable[["ReportOrchestrator", str | None], None] | None = None,
    ) -> None:
        self.api = api
        self.on_update = on_update  # called with the category slug that changed (None = all)
        self.state = ReportState.IDLE
        self.error: str | None = None
        self.categories: dict[str, dict[str, Any]] = {}
        self.providers: dict[str, dict[str, Any]] = {}
        self.checks: list[dict[str, Any]] = []
        self.results: dict[str, dict[str, Any]] = {}
        self.failed_categories: set[str] = set()
        self.last_checked: str | None = None
        self._epoch = 0
        self._seq = itertools.count(1)
        self._merged_seq: dict[str, int] = {}

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def run(self) -> ReportState:
        """Load metadata, then run every category concurrently."""
        self._epoch += 1
        epoch = self._epoch
        self._reset()
        self.state = ReportState.LOADING_METADATA

        cache_buster = int(time.time() * 1000)
        try:
            meta = await self.api.fetch_metadata(cache_buster)
        except MetadataFetchError as e:
            if epoch != self._epoch:
                return self.state  # superseded while metadata was loading
            return self._fail(str(e))
        if epoch != self._epoch:
            return self.state

        try:
            categories, providers, checks = _parse_metadata(meta)
        except (KeyError, TypeError, ValueError) as e:
            return self._fail(f"Malformed metadata response: {e}")
        self.categories = categories
        self.providers = providers
        self.checks = checks

        self.state = ReportState.RUNNING_CATEGORIES
        self._notify(None)

        await asyncio.gather(
            *(self._run_category(slug, epoch, cache_buster) for slug in self.categories)
        )

        if epoch != self._epoch:
            return self.state  # superseded by a newer run

        self.state = ReportState.RENDERED
        self.last_checked = datetime.now(timezone.utc).isoformat()
        self._notify(None)
        return self.state

    async def retry(self) -> ReportState:
        return await self.run()

    async def recheck(self, slug: str) -> dict[str, Any]:
        """Re-run one check. A failure becomes a warning row, never a pending one."""
        epoch = self._epoch
        seq = next(self._seq)
        category = self.check_category(slug)
        try:
            result = await self.api.run_check(slug)
            if not isinstance(result, dict):
                raise HealthApiError("Check failed")
        except HealthApiError as e:
            logger.warning("Re-check of %s failed: %s", slug, e)
            # API-reported failures carry their own message; transport errors don't
            description = str(e) if e.status_code is not None else f"Error: {e}"
            result = placeholder_result(slug, category, description)
        self._merge(slug, result, epoch, seq)
        self._notify(result.get("category", category))
        return self.results.get(slug, result)

    def _reset(self) -> None:
        self.error = None
        self.categories = {}
        self.providers = {}
        self.checks = []
        self.results = {}
        self.failed_categories = set()
        self._merged_seq = {}

    def _fail(self, message: str) -> ReportState:
        logger.error("Health report failed: %s", message)
        self.state = ReportState.ERROR
        self.error = message or "Network error"
        self._notify(None)
        return self.state

    def _notify(self, category: str | None) -> None:
        if self.on_update:
            try:
                self.on_update(self, category)
            except Exception:
                logger.exception("Report update callback error")

    # ── Category fan-out ──────────────────────────────────────────────────

    async def _run_category(self, category: str, epoch: int, cache_buster: int) -> None:
        seq = next(self._seq)
        try:
            data = await self.api.run_category(category, cache_buster)
            results = data["results"]
            if not isinstance(results, dict) or not all(isinstance(r, dict) for r in results.values()):
                raise HealthApiError("Malformed category response")
        except (HealthApiError, KeyError, TypeError) as e:
            logger.warning("Category %s failed: %s", category, e)
            if epoch == self._epoch:
                self.failed_categories.add(category)
            for check in self.checks_in(category):
                self._merge(
                    check["slug"],
                    placeholder_result(
                        check["slug"], category, f"Category request failed: {e}", check.get("title"),
                    ),
                    epoch,
                    seq,
                )
            self._notify(category)
            return

        for slug, result in results.items():
            self._merge(slug, result, epoch, seq)
        self._notify(category)

    def _merge(self, slug: str, result: dict[str, Any], epoch: int, seq: int) -> bool:
        if epoch != self._epoch:
            logger.debug("Dropping %s from superseded run %d", slug, epoch)
            return False
        if seq < self._merged_seq.get(slug, 0):
            logger.debug("Dropping stale result for %s (seq %d)", slug, seq)
            return False
        self._merged_seq[slug] = seq
        self.results[slug] = result
        return True

    # ── Views ─────────────────────────────────────────────────────────────

    def checks_in(self, category: str) -> list[dict[str, Any]]:
        return [c for c in self.checks if c.get("category") == category]

    def check_category(self, slug: str) -> str:
        for check in self.checks:
            if check.get("slug") == slug:
                return check.get("category", FALLBACK_CATEGORY)
        return FALLBACK_CATEGORY

    def results_in(self, category: str) -> list[dict[str, Any]]:
        return [r for r in self.results.values() if r.get("category") == category]

    def pending(self) -> list[str]:
        return [c["slug"] for c in self.checks if c["slug"] not in self.results]

    def category_counts(self, category: str) -> dict[str, int]:
        return _count(self.results_in(category))

    def border_class(self, category: str) -> str:
        counts = self.category_counts(category)
        if counts["critical"]:
            return "border-danger"
        if counts["warning"]:
            return "border-warning"
        if counts["good"]:
            return "border-success"
        return ""

    def summary_counts(self) -> dict[str, int]:
        return _count(list(self.results.values()))

    def sorted_categories(self) -> list[dict[str, Any]]:
        return sorted(self.categories.values(), key=lambda c: c.get("sortOrder", 999))


def _count(results: list[dict[str, Any]]) -> dict[str, int]:
    counts = {"critical": 0, "warning": 0, "good": 0}
    for r in results:
        status = r.get("status")
        if status in counts:
            counts[status] += 1
    return counts


def _parse_metadata(
    meta: Any,
) -> tuple[dict[str, dict[str, Any]], dict[str, dict[str, Any]], list[dict[str, Any]]]:
    """Split a metadata payload into categories, providers and checks.

    Raises ``ValueError`` when a section has the wrong shape.
    """
    if not isinstance(meta, dict):
        raise ValueError("metadata is not an object")
    categories, providers, checks = meta["categories"], meta["providers"], meta["checks"]
    if not isinstance(categories, dict) or not isinstance(providers, dict):
        raise ValueError("categories and providers must be objects")
    if not isinstance(checks, list) or not all(isinstance(c, dict) and "slug" in c for c in checks):
        raise ValueError("checks must be a list of objects with a slug")
    return dict(categories), dict(providers), list(checks)
