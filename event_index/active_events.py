"""
Active event resolution.

Several records of one category can be in effect at the same instant
(e.g. a long-running interaction spanning a burst of log lines). Display
wants exactly one "current" record per category: the most recently started
record that is still in effect.

Tie-break: when several candidates share the greatest start instant, the
first one in match order wins. Match order is index order, which for sorted
builds is start-time order with ties in ingestion order.
"""

import logging
from typing import Dict, List, Mapping, Sequence

logger = logging.getLogger(__name__)


def find_active_events(
    matching_indexes: Mapping[str, Sequence[int]],
    data: Mapping[str, Sequence],
    instant: float
) -> Dict[str, List[int]]:
    """
    Reduce each category's matches to at most one active position.

    Args:
        matching_indexes: Category -> positions in effect at ``instant``
        data: Category -> records (exposing start_seconds / end_time / end_seconds)
        instant: Query instant in POSIX seconds

    Returns:
        Category -> [position] for categories with an active record;
        categories without one are absent
    """
    active = {}

    for category, positions in matching_indexes.items():
        records = data.get(category)
        if records is None:
            logger.warning(f"No records stored for matched category '{category}'")
            continue

        best_position = -1
        best_start = None

        for position in positions:
            record = records[position]
            start = record.start_seconds

            if instant < start:
                continue
            if record.end_time is not None and instant > record.end_seconds:
                continue

            if best_start is None or start > best_start:
                best_position = position
                best_start = start

        if best_position != -1:
            active[category] = [best_position]

    return active
