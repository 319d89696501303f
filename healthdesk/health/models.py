"""Health data models — statuses, results, categories, providers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .sanitizer import sanitize_description

UNREGISTERED_SORT_ORDER = 999


class HealthStatus(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    GOOD = "good"

    @property
    def sort_order(self) -> int:
        return _STATUS_SORT[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def icon(self) -> str:
        return _STATUS_ICON[self]

    @property
    def badge_class(self) -> str:
        return _STATUS_BADGE[self]


_STATUS_SORT = {HealthStatus.CRITICAL: 1, HealthStatus.WARNING: 2, HealthStatus.GOOD: 3}
_STATUS_ICON = {
    HealthStatus.CRITICAL: "fa-times-circle",
    HealthStatus.WARNING: "fa-exclamation-triangle",
    HealthStatus.GOOD: "fa-check-circle",
}
_STATUS_BADGE = {
    HealthStatus.CRITICAL: "bg-danger",
    HealthStatus.WARNING: "bg-warning text-dark",
    HealthStatus.GOOD: "bg-success",
}


# ── Results ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class HealthResult:
    """Outcome of running one check. Immutable once produced."""

    status: HealthStatus
    title: str
    description: str
    slug: str
    category: str
    provider: str = "core"
    action_url: str | None = None
    docs_url: str | None = None

    def __post_init__(self) -> None:
        # frozen dataclass: go through object.__setattr__
        object.__setattr__(self, "description", sanitize_description(self.description))

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "title": self.title,
            "description": self.description,
            "slug": self.slug,
            "category": self.category,
            "provider": self.provider,
            "actionUrl": self.action_url,
            "docsUrl": self.docs_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HealthResult":
        """Rebuild a result from its plain-data form.

        Raises ``ValueError`` when required keys are missing or the status is
        not one of critical / warning / good.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Result must be a mapping, got {type(data).__name__}")
        try:
            return cls(
                status=HealthStatus(data["status"]),
                title=str(data["title"]),
                description=str(data.get("description", "")),
                slug=str(data["slug"]),
                category=str(data["category"]),
                provider=str(data.get("provider") or "core"),
                action_url=data.get("actionUrl"),
                docs_url=data.get("docsUrl"),
            )
        except KeyError as e:
            raise ValueError(f"Result is missing required key {e}") from e


# ── Metadata ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Category:
    """Display/grouping unit for checks. Lower sort_order sorts first."""

    slug: str
    label: str
    icon: str = ""
    sort_order: int = 50
    logo_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "label": self.label,
            "icon": self.icon,
            "sortOrder": self.sort_order,
            "logoUrl": self.logo_url,
        }


@dataclass(frozen=True)
class Provider:
    """Attribution for the source that contributed a check."""

    slug: str
    name: str
    description: str = ""
    url: str | None = None
    icon: str | None = None
    logo_url: str | None = None
    version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "name": self.name,
            "description": self.description,
            "url": self.url,
            "icon": self.icon,
            "logoUrl": self.logo_url,
            "version": self.version,
        }


@dataclass
class RunSnapshot:
    """Results of one full run, in aggregate order."""

    last_run: str | None = None
    results: list[HealthResult] = field(default_factory=list)
