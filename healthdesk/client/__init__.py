"""Report client — concurrent category fetches, filter state, console rendering."""

from .api import HealthApiClient, HealthApiError, MetadataFetchError
from .filters import FilterState, LocalStore, ReportFilters
from .orchestrator import ReportOrchestrator, ReportState
