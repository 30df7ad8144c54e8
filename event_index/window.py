"""
Moving-window and paging helpers over match sets.

Given the positions currently in effect for each category, these helpers
compute neighbouring positions for prefetch/display:
- get_moving_window_indexes: bounded look-behind (prepend) and look-ahead
  (append) around the current matches, topped up to a minimum total size
- get_shifted_indexes: the next / previous N positions, for manual paging
- get_matching_data: project positions back onto records

``data`` arguments map category -> record sequence; for the window and
shift helpers a plain integer length is accepted in place of a sequence.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Union

from utils.errors import ValidationError

logger = logging.getLogger(__name__)

CategoryData = Mapping[str, Union[int, Sequence]]


@dataclass
class WindowConfig:
    """
    Moving window sizes.

    Attributes:
        prepend_size: Positions to show before the first current match
        append_size: Positions to show after the last current match
        minimum_size: Minimum total of prepend + current + append
    """
    prepend_size: int = 5
    append_size: int = 5
    minimum_size: int = 15

    def __post_init__(self):
        for name in ('prepend_size', 'append_size', 'minimum_size'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError(
                    f"{name} must be a non-negative integer, got {value!r}",
                    details={'field': name, 'value': value}
                )

    @classmethod
    def from_dict(cls, section: Mapping) -> 'WindowConfig':
        defaults = cls()
        return cls(
            prepend_size=section.get('prepend_size', defaults.prepend_size),
            append_size=section.get('append_size', defaults.append_size),
            minimum_size=section.get('minimum_size', defaults.minimum_size),
        )


@dataclass
class MovingWindow:
    """Prepend / append positions per category (empty lists omitted)."""
    prepend: Dict[str, List[int]] = field(default_factory=dict)
    append: Dict[str, List[int]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Dict[str, List[int]]]:
        return {'prepend': self.prepend, 'append': self.append}


def _category_length(value: Union[int, Sequence]) -> int:
    if isinstance(value, int):
        return value
    return len(value)


def get_moving_window_indexes(
    current_indexes: Mapping[str, Sequence[int]],
    data: CategoryData,
    config: WindowConfig
) -> MovingWindow:
    """
    Compute prepend / append positions around the current matches.

    Algorithm, per category in ``data``:
    1. No current matches: append = [0, min(minimum_size, length)) (bootstrap view)
    2. Otherwise prepend = up to prepend_size positions before the first match
    3. append = positions after the last match; count is
       max(append_size, minimum_size - (len(prepend) + len(matches))),
       clamped to the category length
    4. If the end of the category cut the append short of the minimum,
       prepend is extended backwards to make up the difference

    The minimum total is reached for a contiguous run of matches. Matches
    with gaps count only themselves, not the positions between them, so
    the total can fall short: matches [3, 11] in 12 records with sizes
    (2, 2, 7) give prepend [0, 1, 2] and no append, 5 positions in all.

    Example:
        current = {'logs': [5, 6]}, length 12,
        WindowConfig(prepend_size=2, append_size=2, minimum_size=7)
        -> prepend {'logs': [3, 4]}, append {'logs': [7, 8, 9]}

    Args:
        current_indexes: Category -> current matching positions (ascending)
        data: Category -> records or record count
        config: Window sizes

    Returns:
        MovingWindow with prepend and append mappings
    """
    window = MovingWindow()

    for category in current_indexes:
        if category not in data:
            logger.warning(f"Window requested for unknown category '{category}', skipping")

    for category, category_data in data.items():
        length = _category_length(category_data)
        indexes = list(current_indexes.get(category) or [])

        if not indexes:
            bootstrap = list(range(min(config.minimum_size, length)))
            if bootstrap:
                window.append[category] = bootstrap
            continue

        first_index = indexes[0]
        last_index = indexes[-1]

        prepend_start = max(0, first_index - config.prepend_size)
        prepend = list(range(prepend_start, first_index))

        remaining_size = config.minimum_size - (len(prepend) + len(indexes))
        target_append_size = max(config.append_size, remaining_size)
        append_end = min(length, last_index + 1 + target_append_size)
        append = list(range(last_index + 1, append_end))

        shortfall = config.minimum_size - (len(prepend) + len(indexes) + len(append))
        if shortfall > 0 and prepend_start > 0:
            prepend = list(range(max(0, prepend_start - shortfall), first_index))

        if prepend:
            window.prepend[category] = prepend
        if append:
            window.append[category] = append

    prepend_counts = {c: len(v) for c, v in window.prepend.items()}
    append_counts = {c: len(v) for c, v in window.append.items()}
    logger.debug(f"Moving window: prepend={prepend_counts}, append={append_counts}")

    return window


def get_shifted_indexes(
    matching_indexes: Mapping[str, Sequence[int]],
    shift: int,
    data: CategoryData
) -> Dict[str, List[int]]:
    """
    Positions just after (shift > 0) or just before (shift < 0) the current matches.

    Example:
        current = {'logs': [5, 6]}, 8 records
        get_shifted_indexes(current, 2, data)  -> {'logs': [7]}
        get_shifted_indexes(current, -2, data) -> {'logs': [3, 4]}

    Categories with no matches, or nothing to shift to, are omitted.
    """
    result = {}

    for category, indexes in matching_indexes.items():
        if not indexes:
            continue

        if shift > 0:
            if category not in data:
                logger.warning(f"Shift requested for unknown category '{category}', skipping")
                continue
            length = _category_length(data[category])
            last_index = indexes[-1]
            shifted = list(range(last_index + 1, min(length, last_index + 1 + shift)))
        else:
            first_index = indexes[0]
            shifted = list(range(max(0, first_index - abs(shift)), first_index))

        if shifted:
            result[category] = shifted

    return result


def get_matching_data(
    matching_indexes: Mapping[str, Sequence[int]],
    data: Mapping[str, Sequence]
) -> Dict[str, list]:
    """
    Project positions onto records.

    Example:
        get_matching_data({'logs': [0, 1]}, {'logs': [a, b, c]}) -> {'logs': [a, b]}
    """
    return {
        category: [data[category][index] for index in indexes]
        for category, indexes in matching_indexes.items()
    }
