"""
Timestamped event records.

A record is one line of a category's newline-delimited JSON input:
    {"start_time": "...", "end_time": "...", "type": "...",
     "message": "...", "details": {...}}

Only start_time and type are required. A record without end_time is an
open interval: it stays in effect from its start onwards.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from utils.timestamps import format_iso, parse_timestamp


@dataclass(frozen=True)
class EventRecord:
    """
    Immutable event record.

    Attributes:
        start_time: Start instant (timezone-aware)
        type: Record kind tag (e.g. 'INFO', 'interaction')
        end_time: End instant, None for an open interval
        message: Optional human-readable message
        details: Optional attribute mapping (values may be nested)
        source: The JSON object the record was parsed from, if any
    """
    start_time: datetime
    type: str
    end_time: Optional[datetime] = None
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    source: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)

    @property
    def start_seconds(self) -> float:
        return self.start_time.timestamp()

    @property
    def end_seconds(self) -> float:
        """End instant in POSIX seconds; +inf for open intervals."""
        if self.end_time is None:
            return math.inf
        return self.end_time.timestamp()

    def contains(self, instant: float) -> bool:
        """Whether the record is in effect at the given POSIX instant."""
        return self.start_seconds <= instant <= self.end_seconds

    @classmethod
    def from_dict(cls, item: Dict[str, Any]) -> 'EventRecord':
        """
        Build a record from a validated JSON object.

        Raises:
            ValidationError: If a timestamp does not parse
        """
        end_raw = item.get('end_time')
        return cls(
            start_time=parse_timestamp(item['start_time']),
            type=item['type'],
            end_time=parse_timestamp(end_raw) if end_raw is not None else None,
            message=item.get('message'),
            details=item.get('details'),
            source=item,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wire form; the original JSON object when the record was parsed from one."""
        if self.source is not None:
            return dict(self.source)

        result = {'start_time': format_iso(self.start_time), 'type': self.type}
        if self.end_time is not None:
            result['end_time'] = format_iso(self.end_time)
        if self.message is not None:
            result['message'] = self.message
        if self.details is not None:
            result['details'] = self.details
        return result
