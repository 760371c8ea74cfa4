"""
TTL (time-to-live) helpers for stored records.

Records carry an optional ``ttl`` attribute holding the expiry as Unix
epoch seconds.
"""

import time
from typing import Optional

MAX_UNIX_TIMESTAMP = 2147483647  # 2038-01-19, 32-bit signed
SECONDS_PER_DAY = 24 * 60 * 60


def calculate_ttl_timestamp(ttl_days: int, now: Optional[float] = None) -> int:
    """
    Expiry timestamp for a record written now.

    Raises:
        ValueError: If the timestamp would overflow 32-bit Unix time
    """
    current = time.time() if now is None else now
    timestamp = int(current) + ttl_days * SECONDS_PER_DAY
    if timestamp > MAX_UNIX_TIMESTAMP:
        raise ValueError("TTL would overflow Unix timestamp (max date: 2038-01-19)")
    return timestamp


def is_expired(record: dict, now: Optional[float] = None) -> bool:
    ttl = record.get("ttl")
    if ttl is None:
        return False
    current = time.time() if now is None else now
    return ttl <= current
