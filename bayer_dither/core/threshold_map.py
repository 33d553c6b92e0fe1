"""Bayer threshold maps for ordered dithering.

A map of level N is a square matrix with 2 ** (N + 1) rows and columns whose
entries are distinct thresholds in [0.0, 1.0). Maps are built by recursive
quadrant subdivision of the 2x2 base matrix and are read-only once built, so
one map can be shared by any number of dithering passes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from bayer_dither.core.errors import InvalidArgumentError
from bayer_dither.utils.cache import MapCache

LOGGER = logging.getLogger("bayer_dither.threshold_map")

# Largest supported level: a 2048x2048 map
MAX_LEVEL = 10

# Rank layout of the level 0 matrix, row-major. Also the per-quadrant offsets
# of every recursive step: TL=0, TR=3, BL=2, BR=1.
BASE_RANKS = np.array(
    [
        [0, 3],
        [2, 1],
    ],
    dtype=np.int64,
)


def _validate_level(level: object) -> int:
    if isinstance(level, bool) or not isinstance(level, (int, np.integer)):
        raise InvalidArgumentError(
            f"Level must be an integer, got {type(level).__name__}"
        )
    level = int(level)
    if level < 0:
        raise InvalidArgumentError(f"Level must be non-negative, got {level}")
    if level > MAX_LEVEL:
        raise InvalidArgumentError(
            f"Level {level} exceeds the maximum supported level {MAX_LEVEL}"
        )
    return level


def bayer_ranks(level: int) -> np.ndarray:
    """Build the integer rank matrix for a level.

    Ranks run from 0 to size**2 - 1 with no ties. Level 0 returns the base
    matrix; every higher level tiles four copies of the previous level,
    each scaled by 4 and offset by the matching cell of the base matrix.

    Args:
        level: non-negative recursion depth.

    Returns:
        2D int64 array of shape (2 ** (level + 1), 2 ** (level + 1)).
    """
    level = _validate_level(level)
    if level == 0:
        return BASE_RANKS.copy()

    prev = 4 * bayer_ranks(level - 1)
    return np.block(
        [
            [prev + BASE_RANKS[0, 0], prev + BASE_RANKS[0, 1]],
            [prev + BASE_RANKS[1, 0], prev + BASE_RANKS[1, 1]],
        ]
    )


@dataclass(frozen=True, eq=False)
class ThresholdMap:
    """A square, read-only matrix of normalized thresholds."""

    level: int
    values: np.ndarray  # float64, shape (size, size), entries in [0.0, 1.0)

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=np.float64)
        # empty maps are allowed here and rejected by the ditherer
        if values.size:
            side = 2 ** (_validate_level(self.level) + 1)
            if values.shape != (side, side):
                raise InvalidArgumentError(
                    f"Level {self.level} needs a {side}x{side} matrix, "
                    f"got shape {values.shape}"
                )
        values.flags.writeable = False
        object.__setattr__(self, "values", values)

    @classmethod
    def from_level(cls, level: int, cache: bool = True) -> ThresholdMap:
        """Build (or fetch from cache) the Bayer map for a level.

        Raises:
            InvalidArgumentError: if level is not an integer in
                [0, MAX_LEVEL].
        """
        level = _validate_level(level)
        if cache:
            cached = _CACHE.get(level)
            if cached is not None:
                LOGGER.debug("Threshold map level %d served from cache", level)
                return cached

        ranks = bayer_ranks(level)
        size = ranks.shape[0]
        threshold_map = cls(level=level, values=ranks / float(size * size))
        LOGGER.debug("Built %dx%d threshold map for level %d", size, size, level)

        if cache:
            _CACHE.put(level, threshold_map)
        return threshold_map

    @classmethod
    def from_values(cls, values: np.ndarray) -> ThresholdMap:
        """Wrap a prebuilt square matrix of thresholds.

        The side must be a power of two no smaller than 2, and the entries
        must be distinct and lie in [0.0, 1.0). The level is derived from
        the side.
        """
        arr = np.asarray(values, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
            raise InvalidArgumentError(
                f"Threshold matrix must be square, got shape {arr.shape}"
            )
        size = arr.shape[0]
        if size < 2 or size & (size - 1) != 0:
            raise InvalidArgumentError(
                f"Threshold matrix side must be a power of two >= 2, got {size}"
            )
        if not np.all((arr >= 0.0) & (arr < 1.0)):
            raise InvalidArgumentError("Threshold values must lie in [0.0, 1.0)")
        if len(np.unique(arr)) != arr.size:
            raise InvalidArgumentError("Threshold values must be distinct")
        return cls(level=size.bit_length() - 2, values=arr)

    @property
    def size(self) -> int:
        return int(self.values.shape[0]) if self.values.ndim == 2 else 0

    @property
    def ranks(self) -> np.ndarray:
        """Integer ranks (0 .. size**2 - 1) behind the normalized values."""
        return np.rint(self.values * self.size * self.size).astype(np.int64)

    def sample(self, row: int, col: int) -> float:
        """Threshold at (row, col), wrapping around on both axes."""
        size = self.size
        return float(self.values[row % size, col % size])

    def tile(self, height: int, width: int, row_offset: int = 0) -> np.ndarray:
        """Repeat the map over a height x width extent.

        Args:
            height: number of output rows.
            width: number of output columns.
            row_offset: image row that the first output row corresponds to,
                so bands of a larger image line up with the full tiling.

        Returns:
            float64 array of shape (height, width).
        """
        size = self.size
        rows = (np.arange(height) + row_offset) % size
        cols = np.arange(width) % size
        return self.values[np.ix_(rows, cols)]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ThresholdMap):
            return NotImplemented
        return self.level == other.level and np.array_equal(
            self.values, other.values
        )

    def __hash__(self) -> int:
        return hash((self.level, self.values.tobytes()))


_CACHE: MapCache[ThresholdMap] = MapCache(max_size=MAX_LEVEL + 1)


def clear_cache() -> None:
    """Drop every cached map."""
    _CACHE.clear()
