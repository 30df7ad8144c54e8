"""
Chunked ingestion of per-category JSONL batches.

Flow for one ingestion call:
1. Count non-blank lines across all entries (progress denominator)
2. For each entry: parse its lines in chunks, awaiting the yield point
   between chunks and streaming 'loading' progress
3. An entry is all-or-nothing: any bad line rejects the whole entry,
   streams an 'error' progress event, and processing moves on
4. Each fully parsed entry is handed to the storage callback, which
   (re)builds that category's index
5. Aggregate result: 'error' listing successful and failed entries when
   any entry failed, otherwise 'success' with per-entry item counts

Validation failures never escape this module; they are reported in the
result. Failures raised by the storage callback propagate to the caller.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from event_index.records import EventRecord
from utils.errors import ValidationError
from utils.responses import (
    STATUS_ERROR,
    STATUS_LOADING,
    STATUS_SUCCESS,
    ProgressStatus,
    Response,
    create_error_response,
    create_success_response,
)
from utils.scheduling import DEFAULT_CHUNK_SIZE, YieldPoint, cooperative_yield, iter_chunks
from .validation import RawLines, parse_record_line, split_lines

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressStatus], None]
StorageFunction = Callable[[str, List[EventRecord], bool], Awaitable[None]]


@dataclass
class DataEntry:
    """One category's raw input: name plus JSONL text (or list of lines)."""
    name: str
    data_jsonl: RawLines


@dataclass
class ProcessingResult:
    """A successfully ingested entry."""
    name: str
    item_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'item_count': self.item_count}


@dataclass
class ProcessingError:
    """A rejected entry."""
    name: str
    message: str
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'message': self.message, 'details': self.details}


@dataclass
class EntryResult:
    """Outcome of parsing one entry."""
    success: bool
    records: List[EventRecord] = field(default_factory=list)
    error: Optional[ProcessingError] = None

    @property
    def item_count(self) -> int:
        return len(self.records)


EntryLike = Union[DataEntry, Mapping[str, Any], Tuple[str, RawLines]]


def coerce_entry(entry: EntryLike) -> DataEntry:
    """Accept DataEntry, {'name', 'data_jsonl'} mappings or (name, lines) pairs."""
    if isinstance(entry, DataEntry):
        return entry
    if isinstance(entry, Mapping):
        return DataEntry(name=entry.get('name'), data_jsonl=entry.get('data_jsonl'))
    name, data_jsonl = entry
    return DataEntry(name=name, data_jsonl=data_jsonl)


def count_total_items(entries: Iterable[DataEntry]) -> int:
    """Number of non-blank lines (and non-string items) across all entries."""
    total = 0
    for entry in entries:
        if entry.data_jsonl and isinstance(entry.data_jsonl, (str, list, tuple)):
            total += len(split_lines(entry.data_jsonl))
    return total


class ProgressTracker:
    """
    Running progress across all entries of one ingestion call.

    Progress is processed / total * 100; an empty call counts as complete.
    """

    def __init__(self, total_items: int, on_progress: Optional[ProgressCallback] = None):
        self.total_items = total_items
        self.processed = 0
        self.on_progress = on_progress

    @property
    def percent(self) -> float:
        if self.total_items <= 0:
            return 100.0
        return min(100.0, self.processed / self.total_items * 100)

    def _emit(self, status: str, progress: float) -> None:
        if self.on_progress is not None:
            self.on_progress(ProgressStatus(status=status, progress=progress))

    def advance(self, count: int) -> None:
        self.processed += count
        self._emit(STATUS_LOADING, self.percent)

    def fail(self, skipped: int = 0) -> None:
        """Account for an entry's unprocessed lines and report the failure."""
        self.processed += skipped
        self._emit(STATUS_ERROR, self.percent)

    def complete(self) -> None:
        self._emit(STATUS_SUCCESS, 100.0)


def _entry_failure(name: str, message: str, details: Optional[Dict[str, Any]] = None) -> EntryResult:
    return EntryResult(success=False, error=ProcessingError(name=name, message=message, details=details))


async def process_data_entry(
    name: str,
    data_jsonl: RawLines,
    tracker: ProgressTracker,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    yield_point: YieldPoint = cooperative_yield
) -> EntryResult:
    """
    Parse one entry's lines into records, chunk by chunk.

    Args:
        name: Category name
        data_jsonl: JSONL text or sequence of lines
        tracker: Shared progress tracker
        chunk_size: Lines parsed per chunk
        yield_point: Awaited between chunks

    Returns:
        EntryResult with all records, or the failure reason (no records)
    """
    if not name or not isinstance(name, str):
        return _entry_failure(str(name), 'name is required')

    if not data_jsonl:
        return _entry_failure(name, 'data_jsonl is required')

    if not isinstance(data_jsonl, (str, list, tuple)):
        return _entry_failure(name, 'data_jsonl must be a string or a list of lines')

    lines = split_lines(data_jsonl)
    records: List[EventRecord] = []

    for offset, chunk, has_more in iter_chunks(lines, chunk_size):
        try:
            for i, line in enumerate(chunk):
                records.append(parse_record_line(line, offset + i + 1))
        except ValidationError as e:
            tracker.fail(skipped=len(lines) - offset)
            logger.warning(f"Rejected entry '{name}': {e.message}")
            return _entry_failure(
                name,
                f"Error processing data for {name}: {e.message}",
                details=dict(e.details)
            )

        tracker.advance(len(chunk))

        if has_more:
            await yield_point()

    logger.debug(f"Parsed entry '{name}': {len(records)} records")

    return EntryResult(success=True, records=records)


async def process_multiple_entries(
    entries: Sequence[EntryLike],
    store_data: StorageFunction,
    on_progress: Optional[ProgressCallback] = None,
    sort_data: bool = True,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    yield_point: YieldPoint = cooperative_yield
) -> Tuple[List[ProcessingResult], List[ProcessingError], ProgressTracker]:
    """
    Parse every entry and store the ones that parsed cleanly.

    Returns:
        (results, errors, tracker)
    """
    data_entries = [coerce_entry(entry) for entry in entries]
    tracker = ProgressTracker(count_total_items(data_entries), on_progress)

    results: List[ProcessingResult] = []
    errors: List[ProcessingError] = []

    logger.info(f"Ingesting {len(data_entries)} entries ({tracker.total_items} items)")

    for entry in data_entries:
        outcome = await process_data_entry(
            entry.name,
            entry.data_jsonl,
            tracker,
            chunk_size=chunk_size,
            yield_point=yield_point
        )

        if outcome.success:
            await store_data(entry.name, outcome.records, sort_data)
            results.append(ProcessingResult(name=entry.name, item_count=outcome.item_count))
        else:
            errors.append(outcome.error)

    return results, errors, tracker


def handle_data_processing_errors(
    results: List[ProcessingResult],
    errors: List[ProcessingError],
    on_error: Optional[Callable[[str, Dict[str, Any]], None]] = None
) -> Response:
    """Aggregate failure response listing successful and failed entries."""
    response = create_error_response(
        'Some entries failed to process',
        details={
            'successful_entries': [r.to_dict() for r in results],
            'failed_entries': [e.to_dict() for e in errors],
        }
    )

    logger.warning(
        f"Ingestion finished with {len(errors)} failed entries: "
        f"{', '.join(e.name for e in errors)}"
    )

    if on_error is not None:
        on_error(response.message, response.details)

    return response


def handle_data_processing_success(
    results: List[ProcessingResult],
    data: Mapping[str, Sequence[EventRecord]],
    tracker: Optional[ProgressTracker] = None,
    on_success: Optional[Callable[[Mapping[str, Sequence[EventRecord]]], None]] = None
) -> Response:
    """Success response with per-entry item counts."""
    if tracker is not None:
        tracker.complete()

    response = create_success_response([r.to_dict() for r in results])

    logger.info(
        f"Ingestion succeeded: "
        f"{', '.join(f'{r.name}={r.item_count}' for r in results) or 'no entries'}"
    )

    if on_success is not None:
        on_success(data)

    return response
