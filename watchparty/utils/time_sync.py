"""
Server time utilities

All timestamps are stored as naive UTC datetimes so that PostgreSQL and
SQLite round-trip them identically.
"""
import time
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current server time as a naive UTC datetime"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_server_time_ms() -> int:
    """
    Get current server time in milliseconds since epoch
    
    Returns:
        int: Timestamp in milliseconds
    """
    return int(time.time() * 1000)
