"""Report filter and collapse state, persisted to the URL and a durable store.

On every change the filters are written to both the report URL query string
and the durable store. On load, a parameter present in the URL wins over the
stored value for that field; absent fields fall back to the store.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

STORAGE_KEY = "healthdesk_filters"
FILTER_FIELDS = ("search", "status", "category")
STATUS_FILTERS = ("", "critical", "warning", "good", "hide_good")


def collapse_key(category: str) -> str:
    return f"healthdesk-category-{category}-collapsed"


class LocalStore:
    """String key/value store kept in a JSON file.

    An unreadable file is treated as empty rather than an error.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable client state %s: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def get_item(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


@dataclass
class FilterState:
    search: str = ""
    status: str = ""
    category: str = ""

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def filters_to_url(filters: FilterState, url: str) -> str:
    """Write non-empty filters into the query string; drop empty ones."""
    target = httpx.URL(url)
    for name in FILTER_FIELDS:
        value = getattr(filters, name)
        if value:
            target = target.copy_set_param(name, value)
        else:
            target = target.copy_remove_param(name)
    return str(target)


def save_filters(filters: FilterState, store: LocalStore, url: str) -> str:
    """Persist ``filters`` to the store and return the updated URL."""
    store.set_item(STORAGE_KEY, json.dumps(filters.to_dict()))
    return filters_to_url(filters, url)


def restore_filters(store: LocalStore, url: str) -> FilterState:
    """Stored filters, overridden per field by parameters present in ``url``."""
    filters = FilterState()
    stored = store.get_item(STORAGE_KEY)
    if stored:
        try:
            data = json.loads(stored)
        except ValueError:
            data = {}
        if isinstance(data, dict):
            for name in FILTER_FIELDS:
                value = data.get(name)
                if isinstance(value, str):
                    setattr(filters, name, value)

    params = httpx.URL(url).params
    for name in FILTER_FIELDS:
        if name in params:
            setattr(filters, name, params[name])
    return filters


class ReportFilters:
    """Current filters plus the URL they are mirrored into."""

    def __init__(self, store: LocalStore, url: str) -> None:
        self.store = store
        self.url = url
        self.state = restore_filters(store, url)

    def update(self, **changes: str) -> FilterState:
        for name, value in changes.items():
            if name not in FILTER_FIELDS:
                raise ValueError(f"Unknown filter: {name}")
            if name == "status" and value not in STATUS_FILTERS:
                raise ValueError(f"Unknown status filter: {value}")
            setattr(self.state, name, value)
        self.url = save_filters(self.state, self.store, self.url)
        return self.state

    # ── Collapse state (independent per category) ────────────────────────

    def is_collapsed(self, category: str) -> bool:
        return self.store.get_item(collapse_key(category)) == "true"

    def set_collapsed(self, category: str, collapsed: bool) -> None:
        """Expanded is the default, so expanding drops the stored key."""
        if collapsed:
            self.store.set_item(collapse_key(category), "true")
        else:
            self.store.remove_item(collapse_key(category))
