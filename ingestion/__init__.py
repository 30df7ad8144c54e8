"""
Ingestion of newline-delimited JSON record batches.

Each entry (category name + JSONL lines) is validated and parsed in
bounded chunks with cooperative yields between them. Entries succeed or
fail as a whole; one bad entry does not stop the others.
"""

from .validation import (
    split_lines,
    validate_record,
    parse_record_line,
    validate_data_jsonl
)
from .pipeline import (
    DataEntry,
    ProcessingResult,
    ProcessingError,
    ProgressTracker,
    count_total_items,
    process_data_entry,
    process_multiple_entries,
    handle_data_processing_errors,
    handle_data_processing_success
)

__all__ = [
    'split_lines',
    'validate_record',
    'parse_record_line',
    'validate_data_jsonl',
    'DataEntry',
    'ProcessingResult',
    'ProcessingError',
    'ProgressTracker',
    'count_total_items',
    'process_data_entry',
    'process_multiple_entries',
    'handle_data_processing_errors',
    'handle_data_processing_success',
]
