"""Supabase repository for provider usage records."""

from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from nutrition_search.domain.errors import UsageRecordingError
from nutrition_search.domain.usage import UsageRecord
from nutrition_search.services.usage import UsageRepository

TABLE = "search_analytics"


@dataclass
class SupabaseUsageRepository(UsageRepository):
    """Append-only usage log stored in Supabase."""

    client: Client

    def append(self, record: UsageRecord) -> None:
        """Insert one usage row."""
        try:
            self.client.table(TABLE).insert(
                {
                    "api_used": record.provider,
                    "search_query": record.query,
                    "results_count": record.result_count,
                    "error_message": record.error_message,
                    "success": record.success,
                    "search_timestamp": record.timestamp.isoformat(),
                }
            ).execute()
        except (APIError, httpx.HTTPError) as exc:
            raise UsageRecordingError(f"usage insert failed: {exc}") from exc

    def list_since(self, start: datetime) -> list[UsageRecord]:
        """Return usage rows logged at or after `start`."""
        try:
            response = (
                self.client.table(TABLE)
                .select(
                    "api_used, search_query, results_count, error_message, "
                    "search_timestamp"
                )
                .gte("search_timestamp", start.isoformat())
                .order("search_timestamp", desc=False)
                .execute()
            )
        except (APIError, httpx.HTTPError) as exc:
            raise UsageRecordingError(f"usage query failed: {exc}") from exc
        records = []
        for row in response.data or []:
            timestamp = row.get("search_timestamp")
            if not isinstance(timestamp, str) or not timestamp:
                continue
            parsed = datetime.fromisoformat(timestamp)
            records.append(
                UsageRecord(
                    provider=str(row.get("api_used") or ""),
                    query=str(row.get("search_query") or ""),
                    result_count=int(row.get("results_count") or 0),
                    timestamp=parsed
                    if parsed.tzinfo is not None
                    else parsed.replace(tzinfo=UTC),
                    error_message=row.get("error_message"),
                )
            )
        return records
