"""Record and index storage owned by one engine instance."""

import logging
from typing import Dict, List, Sequence, Tuple

from event_index.records import EventRecord
from event_index.timestamp_index import CategoryIndexManager
from utils.errors import create_standard_error
from utils.scheduling import DEFAULT_CHUNK_SIZE, YieldPoint, cooperative_yield

logger = logging.getLogger(__name__)


class DataStore:
    """
    Stored records per category, plus their time indexes.

    When a category is stored with sorting, its records are kept in start-time
    order, so neighbouring positions are neighbouring records in time.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        yield_point: YieldPoint = cooperative_yield
    ):
        self.chunk_size = chunk_size
        self.yield_point = yield_point
        self._records: Dict[str, Tuple[EventRecord, ...]] = {}
        self._index_manager = CategoryIndexManager(chunk_size, yield_point)

    async def store_data(self, name: str, records: Sequence[EventRecord], sort_data: bool = True) -> None:
        """
        Index ``records`` and replace category ``name`` with them.

        Raises:
            DataProcessingError: If the index cannot be built
        """
        try:
            index = await self._index_manager.build_index(records, sort_data)
            if sort_data:
                stored = tuple(records[p] for p in index.positions)
                index = index.relabel()
            else:
                stored = tuple(records)
        except Exception as e:
            raise create_standard_error(
                'DataProcessingError',
                f"Failed to store data for entry \"{name}\": {e}",
                operation='storeData',
                component='DataStore',
                additional_info={
                    'entry_name': name,
                    'data_length': len(records),
                    'sort_data': sort_data,
                },
                original_error=e
            ) from e

        self._records[name] = stored
        self._index_manager.set_index(name, index)

    def find_matching_indexes(self, instant: float) -> Dict[str, List[int]]:
        return self._index_manager.find_matching_indexes(instant)

    def get_data(self) -> Dict[str, Tuple[EventRecord, ...]]:
        return dict(self._records)

    @property
    def categories(self) -> List[str]:
        return list(self._records)

    def category_lengths(self) -> Dict[str, int]:
        return {category: len(records) for category, records in self._records.items()}

    def clear(self) -> None:
        """Discard every category's records and index."""
        self._records = {}
        self._index_manager = CategoryIndexManager(self.chunk_size, self.yield_point)
        logger.info("Cleared all stored categories")
