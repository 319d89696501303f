"""Check contract — the dependency bundle, the check base class, check sources.

Every check receives the same ``CheckContext`` and uses whatever it needs
from it. Sources contribute providers, categories and check instances to the
collection pipeline.
"""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from .models import Category, HealthResult, HealthStatus, Provider

if TYPE_CHECKING:
    from ..config import Settings


@dataclass
class CheckContext:
    """Dependencies handed to every check's ``run``."""

    settings: Settings
    db_path: Path | None = None

    # Lazy-loaded connection (opened on first access)
    _db_conn: sqlite3.Connection | None = field(default=None, repr=False)

    def get_db_conn(self) -> sqlite3.Connection:
        """Database connection (lazy-loaded)."""
        if self._db_conn is None:
            if self.db_path is None:
                raise RuntimeError("No database configured for this session")
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._db_conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._db_conn.row_factory = sqlite3.Row
        return self._db_conn

    def close(self) -> None:
        if (conn := self._db_conn) is not None:
            conn.close()
            self._db_conn = None


class HealthCheck(ABC):
    """Base class for checks.

    Subclasses set ``slug`` and ``category`` and implement ``run``. The
    ``critical`` / ``warning`` / ``good`` helpers build results carrying the
    check's own identity.
    """

    slug: str = ""
    category: str = ""
    provider: str = "core"
    title: str = ""
    docs_url: str | None = None

    def get_title(self) -> str:
        return self.title or self.slug

    def action_url(self, status: HealthStatus | None = None) -> str | None:
        return None

    @abstractmethod
    def run(self, context: CheckContext) -> HealthResult:
        ...

    def critical(self, description: str) -> HealthResult:
        return self._result(HealthStatus.CRITICAL, description)

    def warning(self, description: str) -> HealthResult:
        return self._result(HealthStatus.WARNING, description)

    def good(self, description: str) -> HealthResult:
        return self._result(HealthStatus.GOOD, description)

    def _result(self, status: HealthStatus, description: str) -> HealthResult:
        return HealthResult(
            status=status,
            title=self.get_title(),
            description=description,
            slug=self.slug,
            category=self.category,
            provider=self.provider,
            action_url=self.action_url(status),
            docs_url=self.docs_url,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.slug}>"


class CheckSource(Protocol):
    """Contributor of providers, categories and checks.

    Each collect method is called once per session, in pipeline order.
    """

    name: str

    def collect_providers(self) -> list[Provider]:
        ...

    def collect_categories(self) -> list[Category]:
        ...

    def collect_checks(self) -> list[HealthCheck]:
        ...
