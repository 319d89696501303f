"""Collection pipeline — providers, then categories, then checks."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .checks import CheckSource, HealthCheck
from .registry import SessionContext

logger = logging.getLogger(__name__)


class CollectionPipeline:
    """Asks every configured source to contribute, in three ordered phases.

    Registries are overwritten by slug, so a later source can replace a
    category or provider an earlier one registered.
    """

    def __init__(
        self,
        sources: Sequence[CheckSource],
        session: SessionContext,
        disabled_checks: Iterable[str] = (),
    ) -> None:
        self.sources = list(sources)
        self.session = session
        self.disabled_checks = frozenset(disabled_checks)

    def collect_providers(self) -> None:
        for source in self.sources:
            for provider in source.collect_providers():
                self.session.providers.register(provider)

    def collect_categories(self) -> None:
        for source in self.sources:
            for category in source.collect_categories():
                self.session.categories.register(category)

    def collect_checks(self) -> list[HealthCheck]:
        checks: list[HealthCheck] = []
        for source in self.sources:
            for check in source.collect_checks():
                if check.slug in self.disabled_checks:
                    logger.debug("Check %s disabled by configuration", check.slug)
                    continue
                checks.append(check)
        return checks

    def initialize(self) -> None:
        """Phases 1 and 2 only: metadata without check instances."""
        self.collect_providers()
        self.collect_categories()
