"""
Utility functions for partitioned-memory.
"""

from partitioned_memory.utils.json_path import extract_texts, parse_json_path
from partitioned_memory.utils.ttl import calculate_ttl_timestamp, is_expired

__all__ = [
    "calculate_ttl_timestamp",
    "extract_texts",
    "is_expired",
    "parse_json_path",
]
