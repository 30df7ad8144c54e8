"""
Unit tests for shared utilities.

Tests cover:
- Timestamp parsing and video-time conversion
- Frame <-> time conversion
- Error construction
- Configuration loading
- Chunk iteration
"""

import pytest # pyright: ignore[reportMissingImports]
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from utils.config_loader import get_nested_config, load_config, merge_config
from utils.errors import (
    ConfigurationError,
    DataProcessingError,
    ValidationError,
    create_standard_error,
    validate_required_string
)
from utils.responses import create_error_response, create_success_response
from utils.scheduling import iter_chunks
from utils.timestamps import (
    format_iso,
    frame_to_time,
    get_seconds_from_timestamp,
    parse_timestamp,
    time_to_frame,
    video_time_to_iso_timestamp,
    video_time_to_local_timestamp
)


class TestTimestampParsing:
    """Test ISO-8601 parsing."""

    def test_naive_is_utc(self):
        """No offset means UTC; 'Z' is accepted."""
        assert parse_timestamp('2025-06-12T14:03:20') == parse_timestamp('2025-06-12T14:03:20Z')

    def test_offsets_respected(self):
        """Explicit offsets map to the same instant."""
        local = parse_timestamp('2025-06-12T16:03:20+02:00')
        utc = parse_timestamp('2025-06-12T14:03:20.000Z')

        assert local.timestamp() == utc.timestamp()

    @pytest.mark.parametrize('value', [None, '', 'tomorrow', '2025-13-45T99:00:00', 12])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            parse_timestamp(value)


class TestVideoTimeConversion:
    """Test playback offset <-> timestamp helpers."""

    def test_iso_timestamp(self):
        assert video_time_to_iso_timestamp('2024-03-20T10:00:00Z', 65) == '2024-03-20T10:01:05.000Z'

    def test_iso_timestamp_negative_offset(self):
        assert video_time_to_iso_timestamp('2024-03-20T10:00:00Z', -1.5) == '2024-03-20T09:59:58.500Z'

    def test_local_timestamp_keeps_milliseconds(self):
        """Millisecond precision follows the start timestamp."""
        assert video_time_to_local_timestamp(3.5, '2025-06-12T14:03:20.321') == '2025-06-12T14:03:23.821'

    def test_local_timestamp_without_milliseconds(self):
        assert video_time_to_local_timestamp(5, '2025-06-12T14:03:20') == '2025-06-12T14:03:25'
        assert video_time_to_local_timestamp(0.25, '2025-06-12T14:03:20') == '2025-06-12T14:03:20.250'

    def test_seconds_from_timestamp(self):
        """Inverse of the ISO conversion."""
        start = '2024-03-20T10:00:00Z'
        target = video_time_to_iso_timestamp(start, 65)

        assert get_seconds_from_timestamp(start, target) == 65.0

    def test_seconds_from_invalid_timestamp(self):
        with pytest.raises(ValidationError, match='Invalid start timestamp'):
            get_seconds_from_timestamp('nope', '2024-03-20T10:00:00Z')

        with pytest.raises(ValidationError, match='Invalid target timestamp'):
            get_seconds_from_timestamp('2024-03-20T10:00:00Z', 'nope')

    def test_format_iso(self):
        assert format_iso(parse_timestamp('2025-06-12T16:03:20.500+02:00')) == '2025-06-12T14:03:20.500Z'


class TestTimeConversion:
    """Test time <-> frame conversion functions."""

    def test_time_to_frame_basic(self):
        """Test basic time to frame conversion."""
        assert time_to_frame(0.0, 30.0) == 0
        assert time_to_frame(1.0, 30.0) == 30
        assert time_to_frame(10.5, 30.0) == 315

    def test_frame_to_time_basic(self):
        """Test basic frame to time conversion."""
        assert frame_to_time(0, 30.0) == 0.0
        assert frame_to_time(30, 30.0) == 1.0
        assert frame_to_time(315, 30.0) == 10.5

    def test_roundtrip_within_one_frame(self):
        """time -> frame -> time stays within one frame."""
        fps = 25.0
        for t in [0.0, 1.5, 10.25, 45.7]:
            assert abs(t - frame_to_time(time_to_frame(t, fps), fps)) < 1.0 / fps


class TestErrors:
    """Test error construction."""

    def test_standard_error_type_and_context(self):
        error = create_standard_error(
            'DataProcessingError',
            'Failed to store data',
            operation='storeData',
            component='DataStore',
            additional_info={'entry_name': 'logs'},
            original_error=RuntimeError('boom')
        )

        assert isinstance(error, DataProcessingError)
        payload = error.to_dict()
        assert payload['type'] == 'DataProcessingError'
        assert payload['context']['operation'] == 'storeData'
        assert payload['context']['additional_info'] == {'entry_name': 'logs'}
        assert payload['original_error'] == 'boom'

    def test_unknown_type_falls_back_to_base(self):
        error = create_standard_error('Whatever', 'msg', 'op', 'comp')

        assert error.error_type == 'UnknownError'

    def test_required_string(self):
        assert validate_required_string('x', 'name', 'op', 'comp') == 'x'

        with pytest.raises(ValidationError, match='name is required'):
            validate_required_string(None, 'name', 'op', 'comp')

        with pytest.raises(ValidationError, match='non-empty string'):
            validate_required_string(5, 'name', 'op', 'comp')

    def test_configuration_error_is_engine_error(self):
        assert ConfigurationError('x').error_type == 'ConfigurationError'


class TestResponses:
    """Test response helpers."""

    def test_success(self):
        response = create_success_response([1])

        assert response.ok
        assert response.to_dict()['data'] == [1]

    def test_error(self):
        response = create_error_response('bad', details={'line_number': 3})

        assert not response.ok
        assert response.to_dict()['details'] == {'line_number': 3}


class TestConfigLoader:
    """Test YAML configuration loading."""

    def test_default_config(self):
        config = load_config()

        assert get_nested_config(config, 'window.minimum_size') == 15
        assert get_nested_config(config, 'engine.chunk_size') == 10000

    def test_overrides_merge_into_defaults(self, tmp_path):
        """A partial file changes only the keys it names."""
        path = tmp_path / 'custom.yaml'
        path.write_text('window:\n  prepend_size: 2\nextra:\n  flag: true\n')

        config = load_config(path)

        assert get_nested_config(config, 'window.prepend_size') == 2
        assert get_nested_config(config, 'window.append_size') == 5
        assert get_nested_config(config, 'engine.sort_data') is True
        assert get_nested_config(config, 'extra.flag') is True

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text('')

        assert load_config(path) == load_config()

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text('- a\n- b\n')

        with pytest.raises(ValidationError):
            load_config(path)

    def test_merge_does_not_mutate_base(self):
        base = {'window': {'prepend_size': 5}}

        merged = merge_config(base, {'window': {'prepend_size': 1}})

        assert merged['window']['prepend_size'] == 1
        assert base['window']['prepend_size'] == 5

    def test_nested_lookup_default(self):
        assert get_nested_config({'a': 1}, 'a.b', 'fallback') == 'fallback'

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / 'missing.yaml')


class TestChunks:
    """Test chunk iteration."""

    def test_chunks(self):
        chunks = list(iter_chunks([1, 2, 3, 4, 5], 2))

        assert chunks == [(0, [1, 2], True), (2, [3, 4], True), (4, [5], False)]

    def test_empty(self):
        assert list(iter_chunks([], 3)) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            list(iter_chunks([1], 0))


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
