"""
Cooperative yield points for chunked work.

Bulk work (line parsing, index construction) is split into bounded chunks.
Between chunks the worker awaits a yield point so that the hosting event
loop can service other callbacks, e.g. the next clock tick. A chunk
boundary is the only suspension point.
"""

import asyncio
from typing import Awaitable, Callable, Iterator, Sequence, Tuple, TypeVar

YieldPoint = Callable[[], Awaitable[None]]

DEFAULT_CHUNK_SIZE = 10000

T = TypeVar('T')


async def cooperative_yield() -> None:
    """Suspend the current task for one event-loop iteration."""
    await asyncio.sleep(0)


async def no_yield() -> None:
    """Yield point for hosts that do not need cooperative scheduling."""
    return None


def iter_chunks(items: Sequence[T], chunk_size: int) -> Iterator[Tuple[int, Sequence[T], bool]]:
    """
    Split a sequence into consecutive chunks.

    Yields:
        (offset, chunk, has_more) where has_more is False for the last chunk
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    total = len(items)
    for offset in range(0, total, chunk_size):
        yield offset, items[offset:offset + chunk_size], offset + chunk_size < total
