"""
Unit tests for JSONL validation and the chunked ingestion pipeline.

Tests cover:
- Per-line validation rules and error details
- All-or-nothing parsing of an entry
- Progress reporting across entries
- Aggregated success / failure responses
"""

import json
import pytest # pyright: ignore[reportMissingImports]
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from ingestion.pipeline import (
    DataEntry,
    ProcessingError,
    ProcessingResult,
    ProgressTracker,
    count_total_items,
    handle_data_processing_errors,
    handle_data_processing_success,
    process_data_entry,
    process_multiple_entries
)
from ingestion.validation import parse_record_line, split_lines, validate_data_jsonl
from utils.errors import ValidationError
from utils.scheduling import no_yield


def jsonl(*items) -> str:
    return '\n'.join(json.dumps(item) for item in items)


LOG_LINES = jsonl(
    {'start_time': '2025-06-12T14:03:20', 'type': 'INFO', 'message': 'Server started',
     'details': {'port': 27015}},
    {'start_time': '2025-06-12T14:03:30', 'type': 'CONNECT'},
    {'start_time': '2025-06-12T14:03:40', 'end_time': '2025-06-12T14:03:45', 'type': 'KILL'},
)


class TestLineValidation:
    """Test single-line parsing and validation."""

    def test_valid_line(self):
        """A full record parses with every field."""
        line = json.dumps({
            'start_time': '2025-06-12T14:03:20Z',
            'end_time': '2025-06-12T14:03:25Z',
            'type': 'ERROR',
            'message': 'Voice chat server unresponsive',
            'details': {'error_code': 503, 'nested': {'retrying': True}},
        })

        record = parse_record_line(line, 1)

        assert record.type == 'ERROR'
        assert record.end_seconds - record.start_seconds == 5.0
        assert record.details['nested']['retrying'] is True
        assert record.to_dict() == json.loads(line)

    def test_invalid_json_reports_line(self):
        """Malformed JSON carries the line number and content."""
        with pytest.raises(ValidationError) as exc_info:
            parse_record_line('{"start_time": ', 4)

        assert exc_info.value.details['line_number'] == 4
        assert exc_info.value.details['line_content'] == '{"start_time": '
        assert 'line 4' in exc_info.value.message

    @pytest.mark.parametrize('item, field', [
        ({'type': 'INFO'}, 'start_time'),
        ({'start_time': '', 'type': 'INFO'}, 'start_time'),
        ({'start_time': 12, 'type': 'INFO'}, 'start_time'),
        ({'start_time': '2025-06-12T14:03:20'}, 'type'),
        ({'start_time': '2025-06-12T14:03:20', 'type': '  '}, 'type'),
        ({'start_time': '2025-06-12T14:03:20', 'type': 'INFO', 'end_time': 5}, 'end_time'),
        ({'start_time': '2025-06-12T14:03:20', 'type': 'INFO', 'message': ['x']}, 'message'),
        ({'start_time': '2025-06-12T14:03:20', 'type': 'INFO', 'details': [1, 2]}, 'details'),
        ({'start_time': '2025-06-12T14:03:20', 'type': 'INFO', 'details': None}, 'details'),
        ({'start_time': 'yesterday', 'type': 'INFO'}, 'start_time'),
        ({'start_time': '2025-06-12T14:03:20', 'type': 'INFO', 'end_time': 'later'}, 'end_time'),
    ])
    def test_field_rules(self, item, field):
        """Each rule violation names the offending field."""
        with pytest.raises(ValidationError) as exc_info:
            parse_record_line(json.dumps(item), 2)

        assert exc_info.value.details['field'] == field
        assert exc_info.value.details['line_number'] == 2

    def test_non_object_line(self):
        """A JSON array is not a record."""
        with pytest.raises(ValidationError):
            parse_record_line('[1, 2, 3]', 1)

    def test_blank_lines_skipped(self):
        """Blank and whitespace-only lines are not items."""
        assert split_lines('a\n\n  \nb\n') == ['a', 'b']
        assert split_lines(['a', '', 'b']) == ['a', 'b']

    def test_non_string_line(self):
        """Non-string items in a line list are rejected with their line number."""
        with pytest.raises(ValidationError) as exc_info:
            parse_record_line(None, 3)

        assert exc_info.value.details['line_number'] == 3
        assert split_lines(['a', None, ' ', 7]) == ['a', None, 7]

    def test_validate_data_jsonl(self):
        """Whole-payload validation returns a response."""
        assert validate_data_jsonl(LOG_LINES).ok
        assert validate_data_jsonl('').status == 'error'

        bad = validate_data_jsonl(LOG_LINES + '\nnot json')
        assert bad.status == 'error'
        assert bad.details['line_number'] == 4


class TestProcessDataEntry:
    """Test parsing of one entry."""

    @pytest.mark.asyncio
    async def test_parses_all_lines(self):
        """Every line becomes a record, in order."""
        tracker = ProgressTracker(3)

        result = await process_data_entry('logs', LOG_LINES, tracker, yield_point=no_yield)

        assert result.success
        assert [r.type for r in result.records] == ['INFO', 'CONNECT', 'KILL']
        assert result.item_count == 3

    @pytest.mark.asyncio
    async def test_bad_line_rejects_whole_entry(self):
        """One malformed line: no records at all."""
        tracker = ProgressTracker(4)
        data = LOG_LINES + '\n{"type": "INFO"}'

        result = await process_data_entry('logs', data, tracker, chunk_size=2, yield_point=no_yield)

        assert not result.success
        assert result.records == []
        assert result.error.details['line_number'] == 4
        assert 'logs' in result.error.message

    @pytest.mark.asyncio
    async def test_missing_name_and_data(self):
        """Name and data are required."""
        tracker = ProgressTracker(0)

        assert not (await process_data_entry('', LOG_LINES, tracker)).success
        assert not (await process_data_entry('logs', '', tracker)).success
        assert not (await process_data_entry('logs', 42, tracker)).success

    @pytest.mark.asyncio
    async def test_non_string_line_rejects_entry(self):
        """A non-string item fails the entry instead of raising."""
        good = LOG_LINES.split('\n')[0]
        tracker = ProgressTracker(2)

        result = await process_data_entry('logs', [good, None], tracker, yield_point=no_yield)

        assert not result.success
        assert result.error.details['line_number'] == 2
        assert tracker.percent == 100.0

    @pytest.mark.asyncio
    async def test_progress_per_chunk(self):
        """Loading progress is reported after each chunk."""
        events = []
        tracker = ProgressTracker(3, on_progress=events.append)

        await process_data_entry('logs', LOG_LINES, tracker, chunk_size=2, yield_point=no_yield)

        assert [e.status for e in events] == ['loading', 'loading']
        assert events[0].progress == pytest.approx(200 / 3)
        assert events[-1].progress == pytest.approx(100.0)

    @pytest.mark.asyncio
    async def test_yields_between_chunks(self):
        """The yield point runs between chunks only."""
        calls = []

        async def counting_yield():
            calls.append(1)

        await process_data_entry(
            'logs', LOG_LINES, ProgressTracker(3), chunk_size=1, yield_point=counting_yield
        )

        assert len(calls) == 2


class TestProcessMultipleEntries:
    """Test multi-entry ingestion."""

    @pytest.mark.asyncio
    async def test_partial_failure_across_entries(self):
        """A bad second entry does not stop the first from being stored."""
        stored = {}

        async def store(name, records, sort_data):
            stored[name] = records

        entries = [
            ('logs', LOG_LINES),
            DataEntry('interactions', '{"start_time": "2025-06-12T14:03:25", "type": "x"}\n{oops'),
        ]

        results, errors, _ = await process_multiple_entries(entries, store, yield_point=no_yield)

        assert [r.to_dict() for r in results] == [{'name': 'logs', 'item_count': 3}]
        assert len(errors) == 1
        assert errors[0].name == 'interactions'
        assert errors[0].details['line_number'] == 2
        assert list(stored) == ['logs']

    @pytest.mark.asyncio
    async def test_progress_with_failure(self):
        """Failed entries stream an error status and still count towards progress."""
        events = []

        async def store(name, records, sort_data):
            pass

        entries = [
            {'name': 'bad', 'data_jsonl': 'nope'},
            {'name': 'logs', 'data_jsonl': LOG_LINES},
        ]
        await process_multiple_entries(
            entries, store, on_progress=events.append, yield_point=no_yield
        )

        assert events[0].status == 'error'
        assert events[0].progress == pytest.approx(25.0)
        assert events[-1].status == 'loading'
        assert events[-1].progress == pytest.approx(100.0)

    @pytest.mark.asyncio
    async def test_sort_flag_passed_to_storage(self):
        """The sort flag reaches the storage callback."""
        flags = []

        async def store(name, records, sort_data):
            flags.append(sort_data)

        await process_multiple_entries([('logs', LOG_LINES)], store, sort_data=False, yield_point=no_yield)

        assert flags == [False]

    def test_count_includes_non_string_items(self):
        """Non-string items count towards progress like any other line."""
        assert count_total_items([DataEntry('a', ['x', None, ''])]) == 2

    def test_count_total_items(self):
        """Non-blank lines across all entries."""
        entries = [DataEntry('a', LOG_LINES + '\n\n'), DataEntry('b', ['x', ' ']), DataEntry('c', '')]

        assert count_total_items(entries) == 4


class TestResultHandling:
    """Test aggregated responses."""

    def test_error_response(self):
        """Failures list both successful and failed entries."""
        seen = []
        response = handle_data_processing_errors(
            [ProcessingResult('logs', 3)],
            [ProcessingError('interactions', 'Invalid JSON at line 2', {'line_number': 2})],
            on_error=lambda message, details: seen.append((message, details))
        )

        assert response.status == 'error'
        assert response.details['successful_entries'] == [{'name': 'logs', 'item_count': 3}]
        assert response.details['failed_entries'][0]['details'] == {'line_number': 2}
        assert seen[0][0] == 'Some entries failed to process'

    def test_success_response(self):
        """Success emits a final 100% event and calls on_success with the data."""
        events = []
        received = []
        tracker = ProgressTracker(3, on_progress=events.append)

        response = handle_data_processing_success(
            [ProcessingResult('logs', 3)], {'logs': ()}, tracker=tracker, on_success=received.append
        )

        assert response.ok
        assert response.data == [{'name': 'logs', 'item_count': 3}]
        assert events[-1].status == 'success'
        assert events[-1].progress == 100.0
        assert received == [{'logs': ()}]


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
