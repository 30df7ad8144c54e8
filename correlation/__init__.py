"""
Playback-to-event correlation.

Ties a playback clock to the event indexes: every tick is converted to an
absolute instant and answered with the records in effect and the single
active record per category.
"""

from .clock import (
    ClockSource,
    ListenerClock,
    ManualClock,
    FrameClock,
    ReplayClock
)
from .data_store import DataStore
from .engine import (
    EngineConfig,
    EventSyncEngine,
    SyncState
)

__all__ = [
    'ClockSource',
    'ListenerClock',
    'ManualClock',
    'FrameClock',
    'ReplayClock',
    'DataStore',
    'EngineConfig',
    'EventSyncEngine',
    'SyncState',
]
