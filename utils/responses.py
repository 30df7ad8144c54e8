"""Response objects returned to callers of the engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

STATUS_SUCCESS = 'success'
STATUS_ERROR = 'error'
STATUS_LOADING = 'loading'


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Response:
    """
    Terminal result of an engine operation.

    Attributes:
        status: 'success' or 'error'
        message: Human-readable summary
        data: Payload on success (e.g. per-entry item counts)
        details: Structured diagnostics on error
        timestamp: ISO timestamp of creation
    """
    status: str
    message: str
    data: Any = None
    details: Optional[Dict[str, Any]] = None
    timestamp: str = field(default_factory=_now_iso)

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status,
            'message': self.message,
            'data': self.data,
            'details': self.details,
            'timestamp': self.timestamp,
        }


@dataclass
class ProgressStatus:
    """Streamed ingestion progress: status plus percentage (0-100)."""
    status: str
    progress: float


def create_response(
    status: str,
    message: str,
    data: Any = None,
    details: Optional[Dict[str, Any]] = None
) -> Response:
    return Response(status=status, message=message, data=data, details=details)


def create_success_response(data: Any = None, message: str = 'Operation completed successfully') -> Response:
    return create_response(STATUS_SUCCESS, message, data)


def create_error_response(
    message: str,
    details: Optional[Dict[str, Any]] = None,
    data: Any = None
) -> Response:
    return create_response(STATUS_ERROR, message, data, details)
