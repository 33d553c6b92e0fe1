"""Configuration for a dithering run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DEFAULT_LEVEL = 2
DEFAULT_BAND_ROWS = 64


@dataclass(frozen=True)
class DitherSettings:
    """Settings that affect how an image is dithered."""

    level: int = DEFAULT_LEVEL  # map side = 2 ** (level + 1)
    max_workers: Optional[int] = None  # None or 1 = single-threaded
    band_rows: int = DEFAULT_BAND_ROWS  # rows per parallel work item
