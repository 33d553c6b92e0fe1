"""Tests for Bayer threshold map construction."""

import numpy as np
import pytest

from bayer_dither.core.errors import InvalidArgumentError
from bayer_dither.core.threshold_map import (
    MAX_LEVEL,
    ThresholdMap,
    bayer_ranks,
    clear_cache,
)

LEVEL_0 = [
    [0, 3],
    [2, 1],
]

LEVEL_1 = [
    [0, 12, 3, 15],
    [8, 4, 11, 7],
    [2, 14, 1, 13],
    [10, 6, 9, 5],
]

LEVEL_2 = [
    [0, 48, 12, 60, 3, 51, 15, 63],
    [32, 16, 44, 28, 35, 19, 47, 31],
    [8, 56, 4, 52, 11, 59, 7, 55],
    [40, 24, 36, 20, 43, 27, 39, 23],
    [2, 50, 14, 62, 1, 49, 13, 61],
    [34, 18, 46, 30, 33, 17, 45, 29],
    [10, 58, 6, 54, 9, 57, 5, 53],
    [42, 26, 38, 22, 41, 25, 37, 21],
]


@pytest.fixture(autouse=True)
def _fresh_cache():
    clear_cache()
    yield
    clear_cache()


class TestReferenceTables:
    @pytest.mark.parametrize(
        "level, table",
        [(0, LEVEL_0), (1, LEVEL_1), (2, LEVEL_2)],
    )
    def test_matches_reference(self, level, table):
        """Levels 0-2 reproduce the published reference tables."""
        expected = np.array(table, dtype=np.float64) / (len(table) ** 2)
        tmap = ThresholdMap.from_level(level)
        assert np.array_equal(tmap.values, expected)
        assert np.array_equal(tmap.ranks, np.array(table))

    def test_level_zero_values(self):
        tmap = ThresholdMap.from_level(0)
        assert tmap.values.tolist() == [[0.0, 0.75], [0.5, 0.25]]


class TestShape:
    @pytest.mark.parametrize("level", range(0, 7))
    def test_size_range_and_distinct(self, level):
        """Side is 2 ** (level + 1) and thresholds are distinct in [0, 1)."""
        tmap = ThresholdMap.from_level(level)
        size = 2 ** (level + 1)
        assert tmap.size == size
        assert tmap.values.shape == (size, size)
        assert tmap.values.min() >= 0.0
        assert tmap.values.max() < 1.0
        assert len(np.unique(tmap.values)) == size * size

    @pytest.mark.parametrize("level", range(0, 5))
    def test_ranks_are_a_permutation(self, level):
        ranks = bayer_ranks(level)
        assert sorted(ranks.ravel().tolist()) == list(range(ranks.size))

    @pytest.mark.parametrize("level", [1, 2, 3])
    def test_rows_are_balanced(self, level):
        """Every row sums to the same rank total."""
        tmap = ThresholdMap.from_level(level)
        expected = (tmap.size * tmap.size - 1) / 2 * tmap.size
        assert np.all(tmap.ranks.sum(axis=1) == expected)


class TestRecursion:
    @pytest.mark.parametrize("level", [1, 2, 3, 4])
    def test_quadrants_recover_previous_level(self, level):
        """Undoing 4 * M + offset on each quadrant gives the previous level."""
        ranks = bayer_ranks(level)
        prev = bayer_ranks(level - 1)
        n = prev.shape[0]
        quadrants = {
            (0, 0): ranks[:n, :n],
            (0, 1): ranks[:n, n:],
            (1, 0): ranks[n:, :n],
            (1, 1): ranks[n:, n:],
        }
        for (qr, qc), quad in quadrants.items():
            offset = LEVEL_0[qr][qc]
            assert np.array_equal((quad - offset) // 4, prev)
            assert np.all((quad - offset) % 4 == 0)


class TestValidation:
    def test_negative_level(self):
        with pytest.raises(InvalidArgumentError):
            ThresholdMap.from_level(-1)

    def test_level_too_large(self):
        with pytest.raises(InvalidArgumentError):
            ThresholdMap.from_level(MAX_LEVEL + 1)

    @pytest.mark.parametrize("level", [1.0, "2", None, True])
    def test_non_integer_level(self, level):
        with pytest.raises(InvalidArgumentError):
            ThresholdMap.from_level(level)

    def test_invalid_argument_is_value_error(self):
        with pytest.raises(ValueError):
            bayer_ranks(-3)

    def test_numpy_integer_level(self):
        assert ThresholdMap.from_level(np.int64(1)).size == 4


class TestImmutability:
    def test_values_read_only(self):
        tmap = ThresholdMap.from_level(1)
        with pytest.raises(ValueError):
            tmap.values[0, 0] = 0.5

    def test_attributes_frozen(self):
        tmap = ThresholdMap.from_level(1)
        with pytest.raises(AttributeError):
            tmap.level = 3

    def test_from_values_copies_input(self):
        raw = np.array(LEVEL_0, dtype=np.float64) / 4
        tmap = ThresholdMap.from_values(raw)
        raw[0, 0] = 0.9
        assert tmap.values[0, 0] == 0.0


class TestCache:
    def test_same_instance_for_same_level(self):
        """Cached maps are shared, not rebuilt."""
        assert ThresholdMap.from_level(2) is ThresholdMap.from_level(2)

    def test_uncached_build_is_equal(self):
        cached = ThresholdMap.from_level(2)
        fresh = ThresholdMap.from_level(2, cache=False)
        assert fresh is not cached
        assert fresh == cached
        assert hash(fresh) == hash(cached)


class TestSample:
    @pytest.mark.parametrize(
        "row, col, expected",
        [
            (0, 0, 0.0),
            (3, 2, 36.0 / 64.0),
            (7, 7, 21.0 / 64.0),
            (8, 8, 0.0),
            (8, 6, 15.0 / 64.0),
            (-1, -1, 21.0 / 64.0),
        ],
    )
    def test_wraps(self, row, col, expected):
        """Coordinates wrap modulo the map size, negatives included."""
        tmap = ThresholdMap.from_level(2)
        assert tmap.sample(row, col) == expected

    def test_tile_shape_and_offset(self):
        """row_offset shifts which map row the tile starts on."""
        tmap = ThresholdMap.from_level(0)
        tiled = tmap.tile(3, 5, row_offset=1)
        assert tiled.shape == (3, 5)
        assert tiled[0].tolist() == [0.5, 0.25, 0.5, 0.25, 0.5]
        assert tiled[1].tolist() == [0.0, 0.75, 0.0, 0.75, 0.0]


class TestFromValues:
    def test_derives_level(self):
        raw = np.array(LEVEL_1, dtype=np.float64) / 16
        assert ThresholdMap.from_values(raw).level == 1

    @pytest.mark.parametrize(
        "values",
        [
            np.zeros((2, 3)),
            np.zeros((3, 3)),
            np.zeros((1, 1)),
            np.zeros(4),
            np.full((2, 2), 1.0),
            np.full((2, 2), -0.1),
        ],
    )
    def test_rejects_malformed(self, values):
        with pytest.raises(InvalidArgumentError):
            ThresholdMap.from_values(values)


class TestConstructorInvariants:
    def test_level_must_match_shape(self):
        """The level fixes the side: level 5 cannot hold a 2x2 matrix."""
        with pytest.raises(InvalidArgumentError):
            ThresholdMap(level=5, values=np.zeros((2, 2)))

    def test_negative_level_with_values(self):
        with pytest.raises(InvalidArgumentError):
            ThresholdMap(level=-1, values=np.zeros((1, 1)))

    def test_matching_level_accepted(self):
        tmap = ThresholdMap(level=1, values=np.array(LEVEL_1) / 16)
        assert tmap.size == 4

    def test_empty_map_constructs(self):
        """Empty maps are built fine and only rejected when dithering."""
        assert ThresholdMap(level=3, values=np.zeros((0, 0))).size == 0

    def test_from_values_rejects_duplicates(self):
        values = np.array([[0.0, 0.5], [0.5, 0.25]])
        with pytest.raises(InvalidArgumentError):
            ThresholdMap.from_values(values)
