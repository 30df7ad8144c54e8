"""
Playback clock sources.

A clock source emits the playback offset (seconds since the start of the
video) on every tick. Consumers subscribe with a callback and receive an
unsubscribe handle, which they call on teardown.

Offsets are normally non-decreasing, but nothing enforces it: a seek
backwards simply emits a smaller offset.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, List

import numpy as np

from utils.errors import ConfigurationError
from utils.timestamps import frame_to_time

logger = logging.getLogger(__name__)

TickCallback = Callable[[float], None]
Unsubscribe = Callable[[], None]


class ClockSource(ABC):
    """Interface for playback clocks."""

    @abstractmethod
    def subscribe(self, on_tick: TickCallback) -> Unsubscribe:
        """Register a tick listener and return a handle that removes it."""
        pass


class ListenerClock(ClockSource):
    """Clock base that keeps a listener list and delivers ticks synchronously."""

    def __init__(self):
        self._listeners: List[TickCallback] = []
        self.current_time = 0.0

    def subscribe(self, on_tick: TickCallback) -> Unsubscribe:
        self._listeners.append(on_tick)

        def unsubscribe():
            if on_tick in self._listeners:
                self._listeners.remove(on_tick)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _emit(self, offset_seconds: float) -> None:
        self.current_time = offset_seconds
        for listener in list(self._listeners):
            listener(offset_seconds)


class ManualClock(ListenerClock):
    """
    Clock driven explicitly by the caller.

    Usage:
        clock = ManualClock()
        engine = EventSyncEngine('2025-06-12T14:03:20', clock)
        clock.emit(12.5)
    """

    def emit(self, offset_seconds: float) -> None:
        self._emit(float(offset_seconds))


class FrameClock(ListenerClock):
    """
    Clock driven by decoded video frames.

    Each decoded frame advances the clock to frame_idx / fps.
    """

    def __init__(self, fps: float):
        super().__init__()
        if not fps or fps <= 0:
            raise ConfigurationError(f"fps must be positive, got {fps}")
        self.fps = fps
        self.current_frame = 0

    def advance_to_frame(self, frame_idx: int) -> float:
        self.current_frame = frame_idx
        offset = frame_to_time(frame_idx, self.fps)
        self._emit(offset)
        return offset

    def seek(self, offset_seconds: float) -> None:
        self.current_frame = int(offset_seconds * self.fps)
        self._emit(float(offset_seconds))


class ReplayClock(ListenerClock):
    """
    Clock that replays a fixed range of offsets.

    Emits start, start + step, ... up to end (inclusive), awaiting
    interval_seconds of wall-clock time between ticks.
    """

    def __init__(
        self,
        end: float,
        start: float = 0.0,
        step: float = 1.0,
        interval_seconds: float = 0.0
    ):
        super().__init__()
        if step <= 0:
            raise ConfigurationError(f"step must be positive, got {step}")
        if end < start:
            raise ConfigurationError(f"end ({end}) must not be before start ({start})")
        self.start = start
        self.end = end
        self.step = step
        self.interval_seconds = interval_seconds

    def offsets(self) -> np.ndarray:
        count = int(np.floor((self.end - self.start) / self.step + 1e-9)) + 1
        return self.start + np.arange(count) * self.step

    async def run(self) -> int:
        """Emit every offset; returns the number of ticks emitted."""
        offsets = self.offsets()
        logger.info(
            f"Replaying {len(offsets)} ticks: {self.start}s → {self.end}s "
            f"(step {self.step}s)"
        )

        for offset in offsets:
            self._emit(float(offset))
            await asyncio.sleep(self.interval_seconds)

        return len(offsets)
