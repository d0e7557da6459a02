"""Provider usage telemetry and its aggregation."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from nutrition_search.domain.errors import UsageRecordingError
from nutrition_search.domain.providers import ProviderConfig
from nutrition_search.domain.usage import APIUsageStats, UsageRecord

DEFAULT_WINDOW_DAYS = 30

_logger = logging.getLogger(__name__)


class UsageRepository(Protocol):
    """Append-only persistence for usage records."""

    def append(self, record: UsageRecord) -> None:
        """Persist one usage record."""

    def list_since(self, start: datetime) -> list[UsageRecord]:
        """Return records with a timestamp at or after `start`."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class UsageService:
    """Records provider invocations without ever failing the caller."""

    repository: UsageRepository
    clock: Callable[[], datetime] = field(default=_utc_now)

    def record_success(self, provider: str, query: str, count: int) -> None:
        """Record a provider call that returned foods."""
        self._append(
            UsageRecord(
                provider=provider,
                query=query,
                result_count=count,
                timestamp=self.clock(),
            )
        )

    def record_error(self, provider: str, query: str, error: BaseException) -> None:
        """Record a provider call that failed."""
        self._append(
            UsageRecord(
                provider=provider,
                query=query,
                result_count=0,
                timestamp=self.clock(),
                error_message=str(error) or type(error).__name__,
            )
        )

    def stats(
        self,
        window_days: int = DEFAULT_WINDOW_DAYS,
        configs: Iterable[ProviderConfig] = (),
    ) -> list[APIUsageStats]:
        """Aggregate records of the last `window_days` per provider."""
        now = self.clock()
        records = self.repository.list_since(now - timedelta(days=window_days))
        by_name = {config.name: config for config in configs}
        return aggregate_usage(records, now, by_name)

    def _append(self, record: UsageRecord) -> None:
        try:
            self.repository.append(record)
        except UsageRecordingError as exc:
            _logger.warning(
                "Usage record dropped for %s: %s", record.provider, exc
            )


@dataclass
class _Counter:
    today: int
    month: int
    last: datetime


def aggregate_usage(
    records: Iterable[UsageRecord],
    now: datetime,
    configs: dict[str, ProviderConfig] | None = None,
) -> list[APIUsageStats]:
    """Group records per provider and count today's and this month's calls."""
    today = now.astimezone(UTC).date()
    counters: dict[str, _Counter] = {}
    for record in records:
        stamp = record.timestamp.astimezone(UTC)
        counter = counters.setdefault(record.provider, _Counter(0, 0, stamp))
        if (stamp.year, stamp.month) == (today.year, today.month):
            counter.month += 1
            if stamp.date() == today:
                counter.today += 1
        counter.last = max(counter.last, stamp)

    configs = configs or {}
    return [
        APIUsageStats(
            api=api,
            requests_today=counter.today,
            requests_this_month=counter.month,
            last_request=counter.last,
            rate_limit_remaining=_remaining(
                configs.get(api), counter.today, counter.month
            ),
        )
        for api, counter in sorted(counters.items())
    ]


def _remaining(
    config: ProviderConfig | None, requests_today: int, requests_this_month: int
) -> int | None:
    """Tightest of the daily and monthly allowances, never below zero."""
    if config is None:
        return None
    candidates = []
    if config.rate_limit_per_day is not None:
        candidates.append(config.rate_limit_per_day - requests_today)
    if config.rate_limit_per_month is not None:
        candidates.append(config.rate_limit_per_month - requests_this_month)
    if not candidates:
        return None
    return max(min(candidates), 0)
