"""
Timestamp parsing and video-time conversion.

Conventions:
- Record and session timestamps are ISO-8601 strings
- A trailing 'Z' is accepted; timestamps without an offset are taken as UTC
- Internally, instants are POSIX seconds (float)
- Video time is the playback offset in seconds since the session start
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Union

import numpy as np

from .errors import ValidationError

logger = logging.getLogger(__name__)

TimestampLike = Union[str, datetime]


def parse_timestamp(timestamp: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into a timezone-aware datetime.

    Args:
        timestamp: e.g. "2025-06-12T14:03:20", "2024-03-20T10:00:00.000Z"

    Returns:
        Aware datetime (UTC assumed when no offset is given)

    Raises:
        ValidationError: If the value is not a non-empty string or does not parse
    """
    if not timestamp or not isinstance(timestamp, str):
        raise ValidationError('Timestamp must be a non-empty string')

    text = timestamp.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise ValidationError(
            f"Invalid timestamp format: {timestamp}. "
            f"Expected ISO 8601 format (e.g., \"2023-01-01T00:00:00.000Z\")",
            original_error=e,
            details={'value': timestamp}
        ) from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed


def _as_datetime(value: TimestampLike) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    return parse_timestamp(value)


def format_iso(value: datetime) -> str:
    """Render as ISO-8601 UTC with millisecond precision and a 'Z' suffix."""
    utc = _as_datetime(value).astimezone(timezone.utc)
    return utc.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def video_time_to_iso_timestamp(start_timestamp: TimestampLike, video_time_seconds: float) -> str:
    """
    Convert a playback offset to an absolute ISO timestamp.

    Example:
        video_time_to_iso_timestamp("2024-03-20T10:00:00Z", 65)
        -> "2024-03-20T10:01:05.000Z"
    """
    start = _as_datetime(start_timestamp)
    return format_iso(start + timedelta(seconds=video_time_seconds))


def video_time_to_local_timestamp(video_time_seconds: float, start_timestamp: TimestampLike) -> str:
    """
    Convert a playback offset to a timestamp in the data-file format.

    The result carries no zone suffix and is rendered in the start
    timestamp's own offset. Milliseconds are kept when the start timestamp
    had them or when the computed time has a non-zero millisecond part.

    Example:
        video_time_to_local_timestamp(3.5, "2025-06-12T14:03:20.321")
        -> "2025-06-12T14:03:23.821"
    """
    if isinstance(start_timestamp, str):
        original_has_ms = '.' in start_timestamp
    else:
        original_has_ms = start_timestamp.microsecond // 1000 != 0

    start = _as_datetime(start_timestamp)
    current = start + timedelta(seconds=video_time_seconds)
    millis = current.microsecond // 1000

    base = current.strftime('%Y-%m-%dT%H:%M:%S')
    if original_has_ms or millis != 0:
        return f"{base}.{millis:03d}"
    return base


def get_seconds_from_timestamp(start_timestamp: TimestampLike, target_timestamp: TimestampLike) -> float:
    """
    Inverse of video_time_to_iso_timestamp: playback offset of a timestamp.

    Example:
        get_seconds_from_timestamp("2024-03-20T10:00:00Z", "2024-03-20T10:01:05Z")
        -> 65.0

    Raises:
        ValidationError: If either timestamp is invalid
    """
    try:
        start = _as_datetime(start_timestamp)
    except ValidationError as e:
        raise ValidationError(f"Invalid start timestamp: {start_timestamp}", original_error=e) from e

    try:
        target = _as_datetime(target_timestamp)
    except ValidationError as e:
        raise ValidationError(f"Invalid target timestamp: {target_timestamp}", original_error=e) from e

    return (target - start).total_seconds()


def time_to_frame(time_sec: float, fps: float) -> int:
    """
    Convert time in seconds to frame index.

    Args:
        time_sec: Time in seconds
        fps: Frames per second

    Returns:
        Frame index (0-based)
    """
    return int(np.round(time_sec * fps))


def frame_to_time(frame_idx: int, fps: float) -> float:
    """
    Convert frame index to time in seconds.

    Args:
        frame_idx: Frame index (0-based)
        fps: Frames per second

    Returns:
        Time in seconds
    """
    return frame_idx / fps
