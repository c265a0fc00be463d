"""Repository modules for activity history access."""

from agricredit.repositories.activity_repository import ActivityRepository
from agricredit.repositories.memory_activity_repository import InMemoryActivityRepository
from agricredit.repositories.provider import ActivityHistoryProtocol, get_activity_repository

__all__ = [
    "ActivityHistoryProtocol",
    "ActivityRepository",
    "InMemoryActivityRepository",
    "get_activity_repository",
]
