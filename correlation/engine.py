"""
Event synchronization engine.

Correlates a playback clock with categories of timestamped records:

    absolute instant = session start timestamp + playback offset

On every clock tick the engine:
1. Queries each category's time index for records in effect at the instant
2. Reduces each category's matches to one active record
3. Calls on_state_update(state, data) when at least one category matched
4. Always calls on_time_update(video_time_seconds, timestamp)

Data is loaded with the ``add_data`` coroutine, which parses JSONL entries
in chunks and (re)builds the indexes of the categories it contains.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from event_index.active_events import find_active_events
from event_index.records import EventRecord
from event_index.window import (
    MovingWindow,
    WindowConfig,
    get_matching_data,
    get_moving_window_indexes,
    get_shifted_indexes,
)
from ingestion.pipeline import (
    EntryLike,
    ProgressCallback,
    handle_data_processing_errors,
    handle_data_processing_success,
    process_multiple_entries,
)
from utils.errors import ValidationError, create_standard_error, validate_required_string
from utils.responses import Response
from utils.scheduling import DEFAULT_CHUNK_SIZE, YieldPoint, cooperative_yield
from utils.timestamps import parse_timestamp, video_time_to_iso_timestamp
from .clock import ClockSource
from .data_store import DataStore

logger = logging.getLogger(__name__)

StateUpdateCallback = Callable[['SyncState', Dict[str, Tuple[EventRecord, ...]]], None]
TimeUpdateCallback = Callable[[float, str], None]


@dataclass
class EngineConfig:
    """
    Engine settings.

    Attributes:
        chunk_size: Lines / records processed per chunk between yields
        sort_data: Default for sorting categories by start time on ingestion
        window: Default moving-window sizes
    """
    chunk_size: int = DEFAULT_CHUNK_SIZE
    sort_data: bool = True
    window: WindowConfig = field(default_factory=WindowConfig)

    def __post_init__(self):
        if isinstance(self.chunk_size, bool) or not isinstance(self.chunk_size, int) or self.chunk_size <= 0:
            raise ValidationError(
                f"engine.chunk_size must be a positive integer, got {self.chunk_size!r}",
                details={'field': 'engine.chunk_size', 'value': self.chunk_size}
            )
        if not isinstance(self.sort_data, bool):
            raise ValidationError(
                f"engine.sort_data must be a boolean, got {self.sort_data!r}",
                details={'field': 'engine.sort_data', 'value': self.sort_data}
            )

    @classmethod
    def from_dict(cls, config: Optional[Mapping[str, Any]]) -> 'EngineConfig':
        """Read the 'engine' and 'window' sections of a loaded configuration."""
        config = config or {}
        engine_section = config.get('engine') or {}
        window_section = config.get('window') or {}

        if not isinstance(engine_section, Mapping) or not isinstance(window_section, Mapping):
            raise ValidationError("'engine' and 'window' configuration sections must be mappings")

        return cls(
            chunk_size=engine_section.get('chunk_size', DEFAULT_CHUNK_SIZE),
            sort_data=engine_section.get('sort_data', True),
            window=WindowConfig.from_dict(window_section),
        )


@dataclass
class SyncState:
    """
    Engine state at one instant.

    Attributes:
        video_time_seconds: Playback offset
        timestamp: Absolute instant, ISO-8601 UTC
        matching_indexes: Category -> positions in effect
        active_matching_indexes: Category -> [active position]
    """
    video_time_seconds: float
    timestamp: str
    matching_indexes: Dict[str, List[int]]
    active_matching_indexes: Dict[str, List[int]]

    @property
    def has_matches(self) -> bool:
        return bool(self.matching_indexes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'video_time_seconds': self.video_time_seconds,
            'timestamp': self.timestamp,
            'matching_indexes': self.matching_indexes,
            'active_matching_indexes': self.active_matching_indexes,
        }


class EventSyncEngine:
    """
    Synchronizes timestamped event records with video playback.

    Usage:
        clock = ManualClock()
        engine = EventSyncEngine(
            start_timestamp='2025-06-12T14:03:20',
            clock=clock,
            on_state_update=lambda state, data: render(state, data),
        )
        await engine.add_data([('logs', logs_jsonl)])
        clock.emit(15.0)
        engine.destroy()
    """

    def __init__(
        self,
        start_timestamp: str,
        clock: ClockSource,
        on_state_update: Optional[StateUpdateCallback] = None,
        on_time_update: Optional[TimeUpdateCallback] = None,
        config: Optional[EngineConfig] = None,
        yield_point: YieldPoint = cooperative_yield
    ):
        validate_required_string(start_timestamp, 'start_timestamp', 'initialize', 'EventSyncEngine')
        self.start_timestamp = start_timestamp
        self.start_time = parse_timestamp(start_timestamp)
        self.start_seconds = self.start_time.timestamp()

        if clock is None or not callable(getattr(clock, 'subscribe', None)):
            raise create_standard_error(
                'ConfigurationError',
                'A clock source with a subscribe() method is required',
                operation='initialize',
                component='EventSyncEngine'
            )

        self.config = config or EngineConfig()
        self.on_state_update = on_state_update
        self.on_time_update = on_time_update
        self.data_store = DataStore(chunk_size=self.config.chunk_size, yield_point=yield_point)

        self._clock = clock
        self._unsubscribe = clock.subscribe(self.handle_tick)

        logger.info(f"Engine initialized: start={self.start_time.isoformat()}")

    @property
    def is_destroyed(self) -> bool:
        return self._clock is None

    def compute_instant(self, video_time_seconds: float) -> float:
        """Absolute instant (POSIX seconds) for a playback offset."""
        return self.start_seconds + video_time_seconds

    def query(self, video_time_seconds: float) -> SyncState:
        """Match and active sets at a playback offset, without callbacks."""
        instant = self.compute_instant(video_time_seconds)
        matching_indexes = self.data_store.find_matching_indexes(instant)
        active_matching_indexes = find_active_events(
            matching_indexes, self.data_store.get_data(), instant
        )

        return SyncState(
            video_time_seconds=video_time_seconds,
            timestamp=video_time_to_iso_timestamp(self.start_time, video_time_seconds),
            matching_indexes=matching_indexes,
            active_matching_indexes=active_matching_indexes,
        )

    def handle_tick(self, video_time_seconds: float) -> SyncState:
        """
        Process one clock tick.

        Raises:
            ConfigurationError: If the engine has been destroyed
        """
        if self.is_destroyed:
            raise create_standard_error(
                'ConfigurationError',
                'Engine has been destroyed; no clock source attached',
                operation='handleTimeUpdate',
                component='EventSyncEngine',
                additional_info={'video_time_seconds': video_time_seconds}
            )

        state = self.query(video_time_seconds)
        logger.debug(
            f"Tick {video_time_seconds:.3f}s: "
            f"{sum(len(v) for v in state.matching_indexes.values())} matches in "
            f"{len(state.matching_indexes)} categories"
        )

        if state.has_matches and self.on_state_update is not None:
            self.on_state_update(state, self.data_store.get_data())

        if self.on_time_update is not None:
            self.on_time_update(video_time_seconds, state.timestamp)

        return state

    async def add_data(
        self,
        entries: Sequence[EntryLike],
        on_progress: Optional[ProgressCallback] = None,
        on_error: Optional[Callable[[str, Dict[str, Any]], None]] = None,
        on_success: Optional[Callable[[Mapping[str, Sequence[EventRecord]]], None]] = None,
        sort_data: Optional[bool] = None
    ) -> Response:
        """
        Ingest JSONL entries and (re)build their category indexes.

        Args:
            entries: (name, data_jsonl) pairs, DataEntry objects or mappings
            on_progress: Receives ProgressStatus('loading' | 'error' | 'success', percent)
            on_error: Called with (message, details) when any entry failed
            on_success: Called with all stored data when every entry succeeded
            sort_data: Sort categories by start time (engine default when None)

        Returns:
            Response: 'success' with per-entry item counts, or 'error' with
            successful_entries / failed_entries details

        Raises:
            DataProcessingError: If an index cannot be built
        """
        if sort_data is None:
            sort_data = self.config.sort_data

        results, errors, tracker = await process_multiple_entries(
            entries,
            self.data_store.store_data,
            on_progress=on_progress,
            sort_data=sort_data,
            chunk_size=self.config.chunk_size,
            yield_point=self.data_store.yield_point
        )

        if errors:
            return handle_data_processing_errors(results, errors, on_error=on_error)

        return handle_data_processing_success(
            results, self.data_store.get_data(), tracker=tracker, on_success=on_success
        )

    def get_window(
        self,
        current_indexes: Optional[Mapping[str, Sequence[int]]] = None,
        video_time_seconds: Optional[float] = None,
        window_config: Optional[WindowConfig] = None
    ) -> MovingWindow:
        """
        Moving window around the given matches, or around the matches at an offset.

        With neither argument the window bootstraps from the start of each category.
        """
        if current_indexes is None:
            current_indexes = (
                self.query(video_time_seconds).matching_indexes
                if video_time_seconds is not None else {}
            )

        return get_moving_window_indexes(
            current_indexes,
            self.data_store.category_lengths(),
            window_config or self.config.window
        )

    def shift(self, matching_indexes: Mapping[str, Sequence[int]], delta: int) -> Dict[str, List[int]]:
        """Next (delta > 0) or previous (delta < 0) positions around the matches."""
        return get_shifted_indexes(matching_indexes, delta, self.data_store.category_lengths())

    def get_matching_data(self, matching_indexes: Mapping[str, Sequence[int]]) -> Dict[str, List[EventRecord]]:
        return get_matching_data(matching_indexes, self.data_store.get_data())

    @property
    def data(self) -> Dict[str, Tuple[EventRecord, ...]]:
        return self.data_store.get_data()

    @property
    def categories(self) -> List[str]:
        return self.data_store.categories

    def clear(self) -> None:
        """Discard all categories."""
        self.data_store.clear()

    def destroy(self) -> None:
        """Detach from the clock source and release stored data. Safe to call twice."""
        if self.is_destroyed:
            return

        self._unsubscribe()
        self._unsubscribe = None
        self._clock = None
        self.data_store.clear()
        logger.info("Engine destroyed")
