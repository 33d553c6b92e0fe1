"""Row-band partitioning and a thread pool for the dithering pass."""

from __future__ import annotations

import concurrent.futures
import logging
from typing import Callable, Iterator, Optional, Sequence, TypeVar

LOGGER = logging.getLogger("bayer_dither.parallel")

T = TypeVar("T")
R = TypeVar("R")


def row_bands(height: int, band_rows: int) -> Iterator[tuple[int, int]]:
    """Yield (start, stop) row ranges covering [0, height)."""
    if band_rows < 1:
        raise ValueError(f"band_rows must be positive, got {band_rows}")
    for start in range(0, height, band_rows):
        yield start, min(start + band_rows, height)


def create_thread_pool(
    max_workers: Optional[int] = None,
) -> concurrent.futures.ThreadPoolExecutor:
    """Create a thread pool executor with sane defaults."""
    return concurrent.futures.ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix="bayer-dither"
    )


def run_parallel(
    function: Callable[[T], R],
    items: Sequence[T],
    *,
    max_workers: Optional[int] = None,
) -> list[R]:
    """Run *function* for each element in *items* concurrently.

    Results come back in input order. The first worker exception is
    re-raised in the caller.
    """
    if not items:
        return []
    LOGGER.debug(
        "Starting thread pool with up to %s workers for %d items",
        max_workers,
        len(items),
    )
    with create_thread_pool(max_workers=max_workers) as executor:
        return list(executor.map(function, items))
