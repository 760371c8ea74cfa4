"""Tests for TTL helpers."""

import pytest

from partitioned_memory.utils.ttl import (
    MAX_UNIX_TIMESTAMP,
    SECONDS_PER_DAY,
    calculate_ttl_timestamp,
    is_expired,
)


def test_calculate_ttl_timestamp():
    assert calculate_ttl_timestamp(2, now=1000.5) == 1000 + 2 * SECONDS_PER_DAY


def test_calculate_ttl_timestamp_overflow():
    with pytest.raises(ValueError, match="2038"):
        calculate_ttl_timestamp(1, now=MAX_UNIX_TIMESTAMP)


def test_is_expired():
    assert not is_expired({}, now=100)
    assert not is_expired({"ttl": 101}, now=100)
    assert is_expired({"ttl": 100}, now=100)
    assert is_expired({"ttl": 50}, now=100)
