"""Result aggregation — ordering, grouping and counts over a snapshot."""

from __future__ import annotations

from typing import Any

from .models import HealthResult, HealthStatus, RunSnapshot
from .registry import CategoryRegistry


class ResultAggregator:
    """Derived views over the current snapshot.

    Results sort by status priority (critical first), then by the sort order
    of their category, with unregistered categories last.
    """

    def __init__(self, snapshot: RunSnapshot, categories: CategoryRegistry) -> None:
        self.snapshot = snapshot
        self.categories = categories

    def sort_key(self, result: HealthResult) -> tuple[int, int]:
        return (result.status.sort_order, self.categories.sort_order(result.category))

    def sort(self) -> None:
        self.snapshot.results.sort(key=self.sort_key)

    @property
    def results(self) -> list[HealthResult]:
        return self.snapshot.results

    def group_by_category(self) -> dict[str, list[HealthResult]]:
        grouped: dict[str, list[HealthResult]] = {}
        for r in self.results:
            grouped.setdefault(r.category, []).append(r)

        ordered: dict[str, list[HealthResult]] = {}
        for category in self.categories.sorted():
            if category.slug in grouped:
                ordered[category.slug] = grouped[category.slug]
        # Unregistered categories after all registered ones, first-seen order
        for slug, results in grouped.items():
            if slug not in ordered:
                ordered[slug] = results
        return ordered

    def group_by_status(self) -> dict[str, list[HealthResult]]:
        grouped: dict[str, list[HealthResult]] = {s.value: [] for s in HealthStatus}
        for r in self.results:
            grouped[r.status.value].append(r)
        return grouped

    def _count(self, status: HealthStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def critical_count(self) -> int:
        return self._count(HealthStatus.CRITICAL)

    @property
    def warning_count(self) -> int:
        return self._count(HealthStatus.WARNING)

    @property
    def good_count(self) -> int:
        return self._count(HealthStatus.GOOD)

    @property
    def total_count(self) -> int:
        return len(self.results)

    def summary(self) -> dict[str, int]:
        return {
            "critical": self.critical_count,
            "warning": self.warning_count,
            "good": self.good_count,
            "total": self.total_count,
        }

    def stats(self) -> dict[str, Any]:
        return {**self.summary(), "lastRun": self.snapshot.last_run}
