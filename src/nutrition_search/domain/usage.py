"""Domain models for provider usage telemetry."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class UsageRecord:
    """One provider invocation."""

    provider: str
    query: str
    result_count: int
    timestamp: datetime
    error_message: str | None = None

    @property
    def success(self) -> bool:
        """Whether the invocation completed without an error."""
        return self.error_message is None


@dataclass(frozen=True)
class APIUsageStats:
    """Per-provider request counters derived from usage records."""

    api: str
    requests_today: int
    requests_this_month: int
    last_request: datetime
    rate_limit_remaining: int | None = None
