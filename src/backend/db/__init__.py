"""Database module."""

from db.realtime import (
    CANDIDATES_PATH,
    ELECTIONS_PATH,
    VOTERS_PATH,
    RealtimeDatabase,
    Subscription,
    close_realtime_database,
    get_realtime_database,
)

__all__ = [
    "CANDIDATES_PATH",
    "ELECTIONS_PATH",
    "VOTERS_PATH",
    "RealtimeDatabase",
    "Subscription",
    "get_realtime_database",
    "close_realtime_database",
]
