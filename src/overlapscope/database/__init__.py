"""Database layer for overlapscope."""

from overlapscope.database.session import (
    cleanup_database,
    get_session,
    init_database,
    session_scope,
)
from overlapscope.database.store import ExecutionStore, TimeRange

__all__ = [
    "ExecutionStore",
    "TimeRange",
    "cleanup_database",
    "get_session",
    "init_database",
    "session_scope",
]
