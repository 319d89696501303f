"""Health subsystem — registries, collection pipeline, check runner, cache."""

from .cache import CacheStore
from .checks import CheckContext, CheckSource, HealthCheck
from .engine import CheckRunner
from .errors import CheckExecutionError, ConfigurationError, HealthdeskError
from .models import Category, HealthResult, HealthStatus, Provider
from .registry import CategoryRegistry, ProviderRegistry, SessionContext
