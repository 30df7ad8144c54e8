"""
Validation of newline-delimited JSON record input.

Rules per non-blank line:
- must be a JSON object
- start_time: required, non-empty string, valid ISO-8601 timestamp
- type: required, non-empty string
- end_time: optional; string holding a valid ISO-8601 timestamp
- message: optional; string
- details: optional; JSON object (not an array, not null)

Line numbers are 1-based and count non-blank lines only.
"""

import json
import logging
from typing import Any, Dict, List, Sequence, Union

from event_index.records import EventRecord
from utils.errors import ValidationError
from utils.responses import Response, create_error_response, create_success_response
from utils.timestamps import parse_timestamp

logger = logging.getLogger(__name__)

RawLines = Union[str, Sequence[str]]


def split_lines(data_jsonl: RawLines) -> List[Any]:
    """
    Non-blank lines of a JSONL payload (a string or a sequence of lines).

    Non-string elements of a sequence are kept so that parsing rejects them
    with their line number.
    """
    if isinstance(data_jsonl, str):
        lines = data_jsonl.split('\n')
    else:
        lines = list(data_jsonl)
    return [line for line in lines if not isinstance(line, str) or line.strip()]


def _field_error(line_number: int, field: str, value: Any, problem: str) -> ValidationError:
    return ValidationError(
        f"Line {line_number} {problem}",
        details={
            'line_number': line_number,
            'item_index': line_number - 1,
            'field': field,
            'value': value,
        }
    )


def validate_record(item: Any, line_number: int) -> Dict[str, Any]:
    """
    Check one decoded line against the record rules.

    Returns:
        The item, unchanged

    Raises:
        ValidationError: With line_number / field / value details
    """
    if not isinstance(item, dict):
        raise ValidationError(
            f"Line {line_number} is not a JSON object",
            details={'line_number': line_number, 'item_index': line_number - 1, 'value': item}
        )

    for name in ('start_time', 'type'):
        value = item.get(name)
        if not value or not isinstance(value, str) or not value.strip():
            raise _field_error(line_number, name, value, f"is missing or has invalid {name}")

    for name in ('end_time', 'message'):
        if name in item and not isinstance(item[name], str):
            raise _field_error(
                line_number, name, item[name], f"has invalid {name} (must be string if present)"
            )

    if 'details' in item and not isinstance(item['details'], dict):
        raise _field_error(
            line_number, 'details', item['details'], "has invalid details (must be object if present)"
        )

    for name in ('start_time', 'end_time'):
        if name in item:
            try:
                parse_timestamp(item[name])
            except ValidationError as e:
                raise _field_error(
                    line_number, name, item[name], f"has unparseable {name} timestamp"
                ) from e

    return item


def parse_record_line(line: str, line_number: int) -> EventRecord:
    """
    Decode, validate and convert one line.

    Raises:
        ValidationError: For invalid JSON or a rule violation
    """
    if not isinstance(line, str):
        raise ValidationError(
            f"Line {line_number} is not a string",
            details={
                'line_number': line_number,
                'item_index': line_number - 1,
                'value': repr(line),
            }
        )

    try:
        item = json.loads(line)
    except json.JSONDecodeError as e:
        raise ValidationError(
            f"Invalid JSON at line {line_number}",
            original_error=e,
            details={
                'line_number': line_number,
                'line_content': line,
                'reason': e.msg,
            }
        ) from e

    validate_record(item, line_number)
    return EventRecord.from_dict(item)


def validate_data_jsonl(data_jsonl: RawLines) -> Response:
    """
    Validate a whole JSONL payload without keeping the parsed records.

    Returns:
        Success response, or an error response describing the first bad line
    """
    if not data_jsonl:
        return create_error_response('data_jsonl is required')

    for line_number, line in enumerate(split_lines(data_jsonl), start=1):
        try:
            parse_record_line(line, line_number)
        except ValidationError as e:
            return create_error_response(e.message, details=e.details)

    return create_success_response()
