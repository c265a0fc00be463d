"""
Repository provider for dependency injection.

The activity history is the single shared read/append port for the
anti-fraud checks and the submission pipeline. Two implementations exist:

- ActivityRepository: SQLAlchemy (PostgreSQL) when DATABASE_URL is set
- InMemoryActivityRepository: process-local store otherwise (and in tests)

Usage:
    async def some_endpoint(
        history: ActivityHistoryProtocol = Depends(get_activity_repository),
    ):
        recent = await history.list_recent(user_id, limit=50)
"""

from collections.abc import AsyncGenerator
from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

import structlog

from agricredit.core.config import settings
from agricredit.schemas.activity import ActivityRecord, ActivityType

logger = structlog.get_logger(__name__)


# =============================================================================
# Repository Protocols (Interfaces)
# =============================================================================


@runtime_checkable
class ActivityHistoryProtocol(Protocol):
    """Protocol defining activity history operations."""

    async def list_since(
        self,
        user_id: str,
        since: datetime,
        activity_type: Optional[ActivityType] = None,
        limit: Optional[int] = None,
    ) -> list[ActivityRecord]: ...

    async def count_since(self, user_id: str, since: datetime) -> int: ...

    async def list_recent(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        activity_type: Optional[ActivityType] = None,
    ) -> list[ActivityRecord]: ...

    async def create(self, record: ActivityRecord) -> ActivityRecord: ...


# =============================================================================
# Repository Factory Functions
# =============================================================================


def is_database_enabled() -> bool:
    """Check if a SQL database is configured."""
    return bool(settings.DATABASE_URL)


_memory_repository = None


def get_memory_repository():
    """Process-wide in-memory history (used when no database is configured)."""
    global _memory_repository
    if _memory_repository is None:
        from agricredit.repositories.memory_activity_repository import InMemoryActivityRepository

        _memory_repository = InMemoryActivityRepository()
        logger.info("activity_history_initialized", backend="in_memory")
    return _memory_repository


async def get_activity_repository() -> AsyncGenerator[ActivityHistoryProtocol, None]:
    """
    FastAPI dependency yielding the configured activity history.

    With a database, the repository is bound to a session that commits when
    the request completes and rolls back on error.
    """
    if is_database_enabled():
        from agricredit.db.session import session_scope
        from agricredit.repositories.activity_repository import ActivityRepository

        async with session_scope() as session:
            yield ActivityRepository(session)
    else:
        yield get_memory_repository()
