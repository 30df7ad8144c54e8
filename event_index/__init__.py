"""
Time-indexed event lookup.

This package answers, for a point in time:
1. Which records of each category are in effect (TimestampIndex, binary search)
2. Which single record per category is the active one (find_active_events)
3. Which neighbouring records to prefetch or display (moving window, paging)

Records are grouped into independent categories; a record's position in its
category's stored sequence is the handle used by every query result.
"""

from .records import EventRecord
from .timestamp_index import TimestampIndex, CategoryIndexManager
from .active_events import find_active_events
from .window import (
    WindowConfig,
    MovingWindow,
    get_moving_window_indexes,
    get_shifted_indexes,
    get_matching_data
)

__all__ = [
    'EventRecord',
    'TimestampIndex',
    'CategoryIndexManager',
    'find_active_events',
    'WindowConfig',
    'MovingWindow',
    'get_moving_window_indexes',
    'get_shifted_indexes',
    'get_matching_data',
]
