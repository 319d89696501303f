"""Category and provider registries, owned per session by a SessionContext."""

from __future__ import annotations

from dataclasses import dataclass, field

from .models import UNREGISTERED_SORT_ORDER, Category, Provider

CORE_PROVIDER = Provider(
    slug="core",
    name="healthdesk",
    description="Built-in health checks",
    icon="fa-heartbeat",
    version="0.1.0",
)


class CategoryRegistry:
    """Slug-keyed categories. Registering an existing slug replaces it."""

    def __init__(self) -> None:
        self._categories: dict[str, Category] = {}

    def register(self, category: Category) -> None:
        self._categories[category.slug] = category

    def get(self, slug: str) -> Category | None:
        return self._categories.get(slug)

    def has(self, slug: str) -> bool:
        return slug in self._categories

    def all(self) -> dict[str, Category]:
        return dict(self._categories)

    def sorted(self) -> list[Category]:
        """Categories by ascending sort order (registration order on ties)."""
        return sorted(self._categories.values(), key=lambda c: c.sort_order)

    def sort_order(self, slug: str) -> int:
        category = self._categories.get(slug)
        return category.sort_order if category else UNREGISTERED_SORT_ORDER

    def __len__(self) -> int:
        return len(self._categories)


class ProviderRegistry:
    """Slug-keyed providers, seeded with the built-in core provider."""

    def __init__(self) -> None:
        self._providers: dict[str, Provider] = {}
        self.register(CORE_PROVIDER)

    def register(self, provider: Provider) -> None:
        self._providers[provider.slug] = provider

    def get(self, slug: str) -> Provider | None:
        return self._providers.get(slug)

    def has(self, slug: str) -> bool:
        return slug in self._providers

    def all(self) -> dict[str, Provider]:
        return dict(self._providers)

    def third_party(self) -> dict[str, Provider]:
        return {slug: p for slug, p in self._providers.items() if slug != CORE_PROVIDER.slug}

    def __len__(self) -> int:
        return len(self._providers)


@dataclass
class SessionContext:
    """Registries for one orchestration session. Never shared across sessions."""

    categories: CategoryRegistry = field(default_factory=CategoryRegistry)
    providers: ProviderRegistry = field(default_factory=ProviderRegistry)
