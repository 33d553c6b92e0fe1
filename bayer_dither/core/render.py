"""Turn binary dither output back into Pillow images (in memory only)."""

from __future__ import annotations

from typing import Optional

import numpy as np
from PIL import Image

from bayer_dither.core.ditherer import ordered_dither
from bayer_dither.core.errors import InvalidArgumentError
from bayer_dither.core.settings import DEFAULT_BAND_ROWS
from bayer_dither.core.threshold_map import ThresholdMap


def to_image(binary: np.ndarray, invert: bool = False) -> Image.Image:
    """Render a boolean grid as a grayscale image.

    On pixels become white (255) and off pixels black (0), or the other
    way around when invert is set.
    """
    binary = np.asarray(binary, dtype=bool)
    if binary.ndim != 2:
        raise InvalidArgumentError(f"Binary grid must be 2D, got shape {binary.shape}")
    if invert:
        binary = ~binary
    return Image.fromarray(binary.astype(np.uint8) * 255)


def dither_image(
    image: Image.Image,
    threshold_map: ThresholdMap,
    invert: bool = False,
    max_workers: Optional[int] = None,
    band_rows: int = DEFAULT_BAND_ROWS,
) -> Image.Image:
    """Dither a Pillow image, returning a black/white image of the same size."""
    binary = ordered_dither(
        image, threshold_map, max_workers=max_workers, band_rows=band_rows
    )
    return to_image(binary, invert=invert)
