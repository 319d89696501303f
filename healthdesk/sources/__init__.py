"""Check source assembly.

Sources come from two places:
- Built-in sources named in ``settings.sources`` (e.g. ``core``)
- Python entry points in the ``healthdesk.sources`` group, when
  ``settings.load_plugins`` is enabled

An entry point must resolve to a callable taking the settings and returning
an object with ``collect_providers``, ``collect_categories`` and
``collect_checks``.
"""

from __future__ import annotations

import importlib.metadata
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..health.checks import CheckSource
from ..health.errors import ConfigurationError
from .core import CoreSource

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "healthdesk.sources"

BUILTIN_SOURCES: dict[str, Callable[[Settings], CheckSource]] = {
    "core": CoreSource,
}

_REQUIRED_METHODS = ("collect_providers", "collect_categories", "collect_checks")


def validate_source(source: Any, origin: str) -> str | None:
    """Return an error message if ``source`` lacks the source interface."""
    for method in _REQUIRED_METHODS:
        if not callable(getattr(source, method, None)):
            return f"{origin}: missing required method '{method}'"
    return None


def load_entrypoint_sources(settings: Settings, group: str = ENTRY_POINT_GROUP) -> list[CheckSource]:
    """Instantiate validated sources from an entry point group.

    A plugin that fails to import, construct or validate is logged and skipped.
    """
    sources: list[CheckSource] = []
    for ep in importlib.metadata.entry_points(group=group):
        try:
            factory = ep.load()
            source = factory(settings)
        except Exception as e:
            logger.warning("Failed to load check source plugin %s: %s", ep.name, e)
            continue

        error = validate_source(source, f"plugin {ep.name}")
        if error:
            logger.warning(error)
            continue

        logger.debug("Loaded check source plugin %s", ep.name)
        sources.append(source)
    return sources


def build_sources(settings: Settings) -> list[CheckSource]:
    """Built-in sources in configured order, then plugins."""
    sources: list[CheckSource] = []
    for name in settings.sources:
        factory = BUILTIN_SOURCES.get(name)
        if factory is None:
            raise ConfigurationError(f"Unknown check source: {name}")
        sources.append(factory(settings))

    if settings.load_plugins:
        sources.extend(load_entrypoint_sources(settings))
    return sources
