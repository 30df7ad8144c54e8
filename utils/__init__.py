"""Shared utilities for the event synchronization engine."""

from .config_loader import load_config, get_nested_config
from .errors import (
    EventScopeError,
    ValidationError,
    DataProcessingError,
    ConfigurationError,
    create_standard_error,
    validate_required_string
)
from .responses import Response, ProgressStatus
from .timestamps import (
    parse_timestamp,
    video_time_to_iso_timestamp,
    video_time_to_local_timestamp,
    get_seconds_from_timestamp,
    time_to_frame,
    frame_to_time
)

__all__ = [
    'load_config',
    'get_nested_config',
    'EventScopeError',
    'ValidationError',
    'DataProcessingError',
    'ConfigurationError',
    'create_standard_error',
    'validate_required_string',
    'Response',
    'ProgressStatus',
    'parse_timestamp',
    'video_time_to_iso_timestamp',
    'video_time_to_local_timestamp',
    'get_seconds_from_timestamp',
    'time_to_frame',
    'frame_to_time',
]
