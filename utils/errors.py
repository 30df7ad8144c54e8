"""
Error taxonomy for the event synchronization engine.

Three kinds of failure are distinguished:
- ValidationError: malformed configuration or malformed record line
- DataProcessingError: failure while converting records or building indexes
- ConfigurationError: engine used before (or after) required setup

Validation failures during ingestion are captured per entry and reported
in the ingestion result. Everything else is raised at the call site.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ErrorContext:
    """
    Where an error happened.

    Attributes:
        operation: Operation being performed (e.g. 'storeData')
        component: Component performing it (e.g. 'DataStore')
        timestamp: ISO timestamp of the failure
        additional_info: Free-form diagnostic values
    """
    operation: str
    component: str
    timestamp: str = field(default_factory=_now_iso)
    additional_info: Dict[str, Any] = field(default_factory=dict)


class EventScopeError(Exception):
    """Base class for all engine errors."""

    error_type = 'UnknownError'

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        original_error: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.message = message
        self.context = context
        self.original_error = original_error
        self.timestamp = _now_iso()

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'type': self.error_type,
            'message': self.message,
            'timestamp': self.timestamp,
        }
        if self.context is not None:
            result['context'] = {
                'operation': self.context.operation,
                'component': self.context.component,
                'timestamp': self.context.timestamp,
                'additional_info': dict(self.context.additional_info),
            }
        if self.original_error is not None:
            result['original_error'] = str(self.original_error)
        return result


class ValidationError(EventScopeError):
    """Malformed configuration, parameter or record line."""

    error_type = 'ValidationError'

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        original_error: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, context, original_error)
        self.details = details or {}


class DataProcessingError(EventScopeError):
    """Failure while converting records or building indexes."""

    error_type = 'DataProcessingError'


class ConfigurationError(EventScopeError):
    """Engine used before required setup, or after teardown."""

    error_type = 'ConfigurationError'


_ERROR_TYPES = {
    cls.error_type: cls
    for cls in (EventScopeError, ValidationError, DataProcessingError, ConfigurationError)
}


def create_standard_error(
    error_type: str,
    message: str,
    operation: str,
    component: str,
    additional_info: Optional[Dict[str, Any]] = None,
    original_error: Optional[BaseException] = None
) -> EventScopeError:
    """
    Build an error of the named type with a populated context.

    Args:
        error_type: One of 'ValidationError', 'DataProcessingError',
            'ConfigurationError' or 'UnknownError'
        message: Human-readable message
        operation: Operation being performed
        component: Component performing it
        additional_info: Extra diagnostic values stored on the context
        original_error: Underlying exception, if any

    Returns:
        The error instance (not raised)
    """
    error_cls = _ERROR_TYPES.get(error_type, EventScopeError)
    context = ErrorContext(
        operation=operation,
        component=component,
        additional_info=additional_info or {}
    )
    error = error_cls(message, context=context, original_error=original_error)

    logger.debug(
        f"{error_type} in {component}.{operation}: {message}"
        + (f" (caused by {original_error!r})" if original_error else "")
    )

    return error


def validate_required_string(value: Any, name: str, operation: str, component: str) -> str:
    """
    Ensure a required parameter is a non-empty string.

    Raises:
        ValidationError: If the value is missing, not a string, or blank
    """
    if value is None:
        raise create_standard_error(
            'ValidationError', f"{name} is required", operation, component
        )

    if not isinstance(value, str) or not value.strip():
        raise create_standard_error(
            'ValidationError', f"{name} must be a non-empty string", operation, component
        )

    return value
