"""
In-memory activity history.

Append-only, per-user lists kept in insertion order. Suitable for local
development, single-process deployments and tests.
"""

import asyncio
from collections import defaultdict
from datetime import datetime
from typing import Optional

from agricredit.schemas.activity import ActivityRecord, ActivityType


class InMemoryActivityRepository:
    """Activity history held in process memory."""

    def __init__(self, records: Optional[list[ActivityRecord]] = None):
        self._records: dict[str, list[ActivityRecord]] = defaultdict(list)
        self._lock = asyncio.Lock()
        for record in records or []:
            self._records[record.user_id].append(record)

    def _newest_first(self, user_id: str) -> list[ActivityRecord]:
        return sorted(self._records.get(user_id, []), key=lambda r: r.created_at, reverse=True)

    async def list_since(
        self,
        user_id: str,
        since: datetime,
        activity_type: Optional[ActivityType] = None,
        limit: Optional[int] = None,
    ) -> list[ActivityRecord]:
        """Records created at or after ``since``, newest first."""
        matches = [
            r
            for r in self._newest_first(user_id)
            if r.created_at >= since and (activity_type is None or r.activity_type == activity_type)
        ]
        return matches[:limit] if limit is not None else matches

    async def count_since(self, user_id: str, since: datetime) -> int:
        return sum(1 for r in self._records.get(user_id, []) if r.created_at >= since)

    async def list_recent(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        activity_type: Optional[ActivityType] = None,
    ) -> list[ActivityRecord]:
        records = self._newest_first(user_id)
        if activity_type is not None:
            records = [r for r in records if r.activity_type == activity_type]
        return records[offset : offset + limit]

    async def create(self, record: ActivityRecord) -> ActivityRecord:
        async with self._lock:
            self._records[record.user_id].append(record)
        return record
