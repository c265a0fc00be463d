"""Database module."""

from agricredit.db.session import close_db, get_db, init_db, session_scope

__all__ = ["get_db", "init_db", "close_db", "session_scope"]
