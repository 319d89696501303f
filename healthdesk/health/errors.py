"""Exceptions raised by the check engine."""

from __future__ import annotations


class HealthdeskError(Exception):
    """Base class for healthdesk errors."""


class ConfigurationError(HealthdeskError):
    """Raised when the configured sources cannot produce a usable check set."""


class CheckExecutionError(HealthdeskError):
    """Raised when a check raises during a full run."""

    def __init__(self, slug: str, cause: BaseException) -> None:
        self.slug = slug
        self.cause = cause
        super().__init__(f"Check {slug} failed: {cause}")
