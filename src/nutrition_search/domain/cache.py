"""Domain models for the food cache."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class CacheRow:
    """Bookkeeping columns of a cached food row."""

    api_source: str
    cached_at: datetime | None
    expires_at: datetime


@dataclass(frozen=True)
class CacheStats:
    """Summary of the cache contents for administrators."""

    total_entries: int
    active_entries: int
    expired_entries: int
    by_api: dict[str, int] = field(default_factory=dict)
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None
