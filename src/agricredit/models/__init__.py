"""Database models module."""

from agricredit.models.activity import Activity

__all__ = ["Activity"]
