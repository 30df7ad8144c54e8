"""
Per-category time index over event records.

Each category keeps three parallel arrays:
- start_times: record start instants (POSIX seconds)
- end_times: record end instants (+inf for open intervals)
- positions: position of each entry in the sequence the index was built from

Point query "which records are in effect at instant t":
1. Binary search for k = number of entries with start <= t
2. Scan the prefix [0, k) and keep entries with end >= t

The search is O(log n); the scan is O(k), bounded by the records that have
already started. This requires start_times to be sorted, which holds when
the index is built with sort=True. For unsorted builds the caller is
responsible for passing records already ordered by start time.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from utils.scheduling import DEFAULT_CHUNK_SIZE, YieldPoint, cooperative_yield, iter_chunks

logger = logging.getLogger(__name__)


class TimestampIndex:
    """
    Sorted start/end arrays for one category.

    Build with the async ``build`` classmethod; construction is chunked and
    awaits ``yield_point`` between chunks.
    """

    def __init__(
        self,
        start_times: np.ndarray,
        end_times: np.ndarray,
        positions: np.ndarray,
        is_sorted: bool = True
    ):
        if not (len(start_times) == len(end_times) == len(positions)):
            raise ValueError(
                f"Index arrays must have equal length, got "
                f"{len(start_times)}/{len(end_times)}/{len(positions)}"
            )
        self.start_times = start_times
        self.end_times = end_times
        self.positions = positions
        self.is_sorted = is_sorted

    @classmethod
    async def build(
        cls,
        records: Sequence,
        sort: bool = True,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        yield_point: YieldPoint = cooperative_yield
    ) -> 'TimestampIndex':
        """
        Build an index from records exposing ``start_seconds`` / ``end_seconds``.

        Args:
            records: Ordered records; position i refers to records[i]
            sort: Stably reorder entries by start time (ties keep input order)
            chunk_size: Records converted per chunk
            yield_point: Awaited between chunks

        Returns:
            The constructed index
        """
        total = len(records)
        start_times = np.empty(total, dtype=np.float64)
        end_times = np.empty(total, dtype=np.float64)

        for offset, chunk, has_more in iter_chunks(records, chunk_size):
            for i, record in enumerate(chunk):
                start_times[offset + i] = record.start_seconds
                end_times[offset + i] = record.end_seconds

            if has_more:
                await yield_point()

        positions = np.arange(total, dtype=np.int64)

        if sort:
            order = np.argsort(start_times, kind='stable')
            start_times = start_times[order]
            end_times = end_times[order]
            positions = positions[order]

        logger.debug(f"Built index over {total} records (sorted={sort})")

        return cls(start_times, end_times, positions, is_sorted=sort)

    def __len__(self) -> int:
        return len(self.positions)

    def count_started(self, instant: float) -> int:
        """Number of entries whose start is <= instant."""
        return int(np.searchsorted(self.start_times, instant, side='right'))

    def query(self, instant: float) -> List[int]:
        """
        Positions of all entries in effect at ``instant``.

        Returns positions p with start[p] <= instant <= end[p], in index order.
        """
        k = self.count_started(instant)
        if k == 0:
            return []

        in_effect = self.end_times[:k] >= instant
        return self.positions[:k][in_effect].tolist()

    def relabel(self) -> 'TimestampIndex':
        """
        Copy of this index whose positions are its own entry order.

        Used when the caller stores the records in index order.
        """
        return TimestampIndex(
            self.start_times,
            self.end_times,
            np.arange(len(self.positions), dtype=np.int64),
            is_sorted=self.is_sorted
        )


class CategoryIndexManager:
    """
    Table of category name -> TimestampIndex, owned by one engine instance.

    A category is (re)built in full on every ingestion; the new index
    replaces the old one in a single assignment after construction.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        yield_point: YieldPoint = cooperative_yield
    ):
        self.chunk_size = chunk_size
        self.yield_point = yield_point
        self._indexes: Dict[str, TimestampIndex] = {}

    async def build_index(self, records: Sequence, sort_data: bool = True) -> TimestampIndex:
        """
        Build an index with this table's chunking, without installing it.

        Queries keep seeing the previous index until ``set_index`` is called.
        """
        return await TimestampIndex.build(
            records,
            sort=sort_data,
            chunk_size=self.chunk_size,
            yield_point=self.yield_point
        )

    def set_index(self, category: str, index: TimestampIndex) -> None:
        self._indexes[category] = index
        logger.info(f"Indexed category '{category}': {len(index)} records")

    def get_index(self, category: str) -> Optional[TimestampIndex]:
        return self._indexes.get(category)

    @property
    def categories(self) -> List[str]:
        return list(self._indexes)

    def find_matching_indexes(self, instant: float) -> Dict[str, List[int]]:
        """
        Match set for ``instant``.

        Categories without any entry in effect are absent from the result.
        """
        result = {}
        for category, index in self._indexes.items():
            matches = index.query(instant)
            if matches:
                result[category] = matches
        return result

    def clear(self) -> None:
        """Drop every category index."""
        self._indexes = {}
