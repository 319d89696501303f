"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from healthdesk.config import Settings
from healthdesk.health.cache import CacheStore
from healthdesk.health.checks import CheckContext, HealthCheck
from healthdesk.health.engine import CheckRunner
from healthdesk.health.models import Category, HealthResult, HealthStatus, Provider


class StaticCheck(HealthCheck):
    """Returns a fixed status and counts how often it ran."""

    def __init__(
        self,
        slug: str,
        category: str,
        status: HealthStatus = HealthStatus.GOOD,
        provider: str = "core",
        error: str | None = None,
    ) -> None:
        self.slug = slug
        self.category = category
        self.provider = provider
        self.status = status
        self.error = error
        self.calls = 0

    def run(self, context: CheckContext) -> HealthResult:
        self.calls += 1
        if self.error:
            raise RuntimeError(self.error)
        return self._result(self.status, f"{self.slug} is {self.status.value}")


class StaticSource:
    """Check source backed by plain lists."""

    def __init__(
        self,
        name: str = "test",
        providers: list[Provider] | None = None,
        categories: list[Category] | None = None,
        checks: list[HealthCheck] | None = None,
    ) -> None:
        self.name = name
        self.providers = providers or []
        self.categories = categories or []
        self.checks = checks or []

    def collect_providers(self) -> list[Provider]:
        return list(self.providers)

    def collect_categories(self) -> list[Category]:
        return list(self.categories)

    def collect_checks(self) -> list[HealthCheck]:
        return list(self.checks)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        cache_db_path=str(tmp_path / "cache.db"),
        client_state_file=str(tmp_path / "client_state.json"),
        load_plugins=False,
        api_token="",
        _env_file=None,
    )


@pytest.fixture
def cache(tmp_path: Path) -> CacheStore:
    store = CacheStore(db_path=tmp_path / "cache.db")
    yield store
    store.close()


@pytest.fixture
def context(settings: Settings) -> CheckContext:
    ctx = CheckContext(settings=settings, db_path=Path(settings.cache_db_path))
    yield ctx
    ctx.close()


@pytest.fixture
def standard_categories() -> list[Category]:
    return [
        Category(slug="system", label="System", icon="fa-server", sort_order=10),
        Category(slug="database", label="Database", icon="fa-database", sort_order=20),
        Category(slug="security", label="Security", icon="fa-shield-alt", sort_order=30),
        Category(slug="content", label="Content", icon="fa-file-alt", sort_order=80),
    ]


@pytest.fixture
def make_runner(context: CheckContext, cache: CacheStore) -> Callable[..., CheckRunner]:
    """Build a runner over ad hoc sources, sharing the test cache."""

    def _make(*sources: Any, disabled_checks: tuple[str, ...] = ()) -> CheckRunner:
        return CheckRunner(list(sources), context, cache=cache, disabled_checks=disabled_checks)

    return _make
