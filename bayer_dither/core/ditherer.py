"""Ordered (Bayer) dithering of a luminance grid to black and white.

Each pixel is compared against the threshold map cell it lands on when the
map is tiled over the image:

    on  <=>  luminance[r, c] > threshold[r % size, c % size]

No state carries between pixels, so the image can be split into row bands
and processed concurrently without changing the result.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from bayer_dither.core.errors import InvalidArgumentError
from bayer_dither.core.luminance import as_luminance, to_array
from bayer_dither.core.settings import DEFAULT_BAND_ROWS, DitherSettings
from bayer_dither.core.threshold_map import ThresholdMap
from bayer_dither.utils.parallel import row_bands, run_parallel

LOGGER = logging.getLogger("bayer_dither.ditherer")


class Ditherer:
    """Applies one threshold map to any number of luminance grids."""

    def __init__(
        self,
        threshold_map: ThresholdMap,
        max_workers: Optional[int] = None,
        band_rows: int = DEFAULT_BAND_ROWS,
    ) -> None:
        if threshold_map is None or threshold_map.size == 0:
            raise InvalidArgumentError("Threshold map has zero size")
        if band_rows < 1:
            raise InvalidArgumentError(f"band_rows must be positive, got {band_rows}")
        if max_workers is not None and max_workers < 1:
            raise InvalidArgumentError(
                f"max_workers must be positive, got {max_workers}"
            )
        self.threshold_map = threshold_map
        self.max_workers = max_workers
        self.band_rows = band_rows

    @classmethod
    def from_settings(cls, settings: DitherSettings) -> Ditherer:
        return cls(
            ThresholdMap.from_level(settings.level),
            max_workers=settings.max_workers,
            band_rows=settings.band_rows,
        )

    def decide(self, row: int, col: int, luminance: float) -> bool:
        """Binary decision for a single pixel."""
        return bool(luminance > self.threshold_map.sample(row, col))

    def _dither_band(
        self, luminance: np.ndarray, out: np.ndarray, start: int, stop: int
    ) -> None:
        band = luminance[start:stop]
        thresholds = self.threshold_map.tile(
            band.shape[0], band.shape[1], row_offset=start
        )
        np.greater(band, thresholds, out=out[start:stop])

    def apply(self, source: object) -> np.ndarray:
        """Dither a luminance source.

        Args:
            source: a LuminanceGrid, a 2D numpy array (float in [0.0, 1.0]
                or integer fixed-point) or a Pillow image.

        Returns:
            Boolean array of shape (height, width); True = on (white).
        """
        luminance = to_array(as_luminance(source))
        height, width = luminance.shape
        out = np.zeros((height, width), dtype=bool)
        if height == 0 or width == 0:
            return out

        bands = list(row_bands(height, self.band_rows))
        if self.max_workers is None or self.max_workers == 1 or len(bands) == 1:
            for start, stop in bands:
                self._dither_band(luminance, out, start, stop)
        else:
            LOGGER.debug(
                "Dithering %dx%d image in %d bands on up to %d workers",
                width,
                height,
                len(bands),
                self.max_workers,
            )
            run_parallel(
                lambda band: self._dither_band(luminance, out, *band),
                bands,
                max_workers=self.max_workers,
            )
        return out


def ordered_dither(
    source: object,
    threshold_map: ThresholdMap,
    max_workers: Optional[int] = None,
    band_rows: int = DEFAULT_BAND_ROWS,
) -> np.ndarray:
    """Dither *source* with *threshold_map* in a single call."""
    ditherer = Ditherer(threshold_map, max_workers=max_workers, band_rows=band_rows)
    return ditherer.apply(source)
