#!/usr/bin/env python3
"""
Command-line replay for Event Scope.

Loads one JSONL file per category, replays a playback clock over a range of
offsets and logs the active record of every category at each tick.

Usage:
    python main.py --start 2025-06-12T14:03:20 --data logs=logs.jsonl --to 120

Pipeline:
1. Configuration (YAML) and logging setup
2. Ingestion of every --data file (chunked, all-or-nothing per category)
3. Clock replay from --from to --to in --step increments
4. Per-tick report of active records and the moving window
"""

import argparse
import asyncio
import logging
from pathlib import Path
import sys
from typing import Dict, List, Tuple

from correlation import EngineConfig, EventSyncEngine, ReplayClock, SyncState
from utils.config_loader import get_nested_config, load_config
from utils.errors import EventScopeError

logger = logging.getLogger(__name__)


def configure_logging(level: str = 'INFO'):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def parse_data_arguments(values: List[str]) -> List[Tuple[str, Path]]:
    """
    Parse NAME=PATH pairs.

    Raises:
        ValueError: If a value is not of the form NAME=PATH
    """
    pairs = []
    for value in values:
        name, sep, path = value.partition('=')
        if not sep or not name or not path:
            raise ValueError(f"Expected NAME=PATH, got '{value}'")
        pairs.append((name, Path(path)))
    return pairs


def _format_state(state: SyncState, engine: EventSyncEngine) -> List[str]:
    lines = []
    active = engine.get_matching_data(state.active_matching_indexes)
    for category, positions in state.matching_indexes.items():
        records = active.get(category)
        if records:
            record = records[0]
            summary = f"{record.type}: {record.message}" if record.message else record.type
        else:
            summary = '-'
        lines.append(f"  [{category}] {len(positions)} in effect, active: {summary}")
    return lines


async def run_replay(
    start_timestamp: str,
    data_files: List[Tuple[str, Path]],
    config: Dict,
    start: float,
    end: float,
    step: float
) -> int:
    """
    Ingest data files and replay the clock.

    Returns:
        Process exit code (0 on success)
    """
    clock = ReplayClock(
        end=end,
        start=start,
        step=step,
        interval_seconds=get_nested_config(config, 'replay.interval_seconds', 0.0)
    )

    def on_state_update(state, data):
        logger.info(f"{state.timestamp} (t={state.video_time_seconds:.2f}s)")
        for line in _format_state(state, engine):
            logger.info(line)

    def on_progress(status):
        logger.debug(f"Ingestion {status.status}: {status.progress:.1f}%")

    engine = EventSyncEngine(
        start_timestamp,
        clock,
        on_state_update=on_state_update,
        config=EngineConfig.from_dict(config)
    )

    try:
        entries = []
        for name, path in data_files:
            if not path.exists():
                logger.error(f"Data file not found: {path}")
                return 1
            entries.append((name, path.read_text(encoding='utf-8')))

        response = await engine.add_data(entries, on_progress=on_progress)
        if not response.ok:
            logger.error(f"Ingestion failed: {response.message}")
            for failure in response.details['failed_entries']:
                logger.error(f"  {failure['name']}: {failure['message']}")
            return 1

        for summary in response.data:
            logger.info(f"Loaded {summary['item_count']} records into '{summary['name']}'")

        ticks = await clock.run()

        window = engine.get_window(video_time_seconds=end)
        logger.info(
            f"Replayed {ticks} ticks; window at {end}s: "
            f"prepend={window.prepend}, append={window.append}"
        )
        return 0

    finally:
        engine.destroy()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Event Scope - synchronize timestamped events with video playback',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Replay the first minute
  python main.py --start 2025-06-12T14:03:20 --data logs=logs.jsonl --to 60

  # Two categories, half-second steps, custom config
  python main.py --start 2025-06-12T14:03:20 --data logs=logs.jsonl \\
      --data interactions=interactions.jsonl --step 0.5 --config custom.yaml
        """
    )

    parser.add_argument(
        '--start',
        type=str,
        required=True,
        help='Timestamp at which the video starts (ISO 8601)'
    )

    parser.add_argument(
        '--data',
        action='append',
        default=[],
        metavar='NAME=PATH',
        help='Category name and JSONL file (repeatable)'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to configuration YAML file (default: configs/default.yaml)'
    )

    parser.add_argument('--from', dest='range_start', type=float, default=0.0,
                        help='First playback offset in seconds (default: 0)')
    parser.add_argument('--to', dest='range_end', type=float, default=60.0,
                        help='Last playback offset in seconds (default: 60)')
    parser.add_argument('--step', type=float, default=None,
                        help='Seconds between ticks (default: replay.step_seconds)')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')

    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except (FileNotFoundError, EventScopeError) as e:
        configure_logging()
        logger.error(str(e))
        sys.exit(1)

    configure_logging('DEBUG' if args.verbose else get_nested_config(config, 'logging.level', 'INFO'))

    try:
        data_files = parse_data_arguments(args.data)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(2)

    if not data_files:
        logger.error("At least one --data NAME=PATH is required")
        sys.exit(2)

    step = args.step if args.step is not None else get_nested_config(config, 'replay.step_seconds', 1.0)

    try:
        exit_code = asyncio.run(
            run_replay(args.start, data_files, config, args.range_start, args.range_end, step)
        )
    except EventScopeError as e:
        logger.error(f"{e.error_type}: {e.message}")
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == '__main__':
    main()
