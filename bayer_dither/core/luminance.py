"""Luminance sources for the dithering pass.

The ditherer only needs a rectangular grid of brightness values in
[0.0, 1.0]. Anything with a width, a height and a per-coordinate
luminance lookup qualifies; numpy arrays, Pillow images and OpenCV frames
are adapted here. Color to luminance conversion is left to the image
library that owns the pixels.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import cv2
import numpy as np
from PIL import Image

from bayer_dither.core.errors import InvalidArgumentError


@runtime_checkable
class LuminanceGrid(Protocol):
    """Anything that can report a brightness per (row, col).

    luminance() must return floats in [0.0, 1.0]; fixed-point sources should
    be wrapped in ArrayLuminance instead, which scales them.
    """

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    def luminance(self, row: int, col: int) -> float: ...


def _normalize(array: np.ndarray) -> np.ndarray:
    """Convert unsigned fixed-point samples to floats in [0.0, 1.0]."""
    if np.issubdtype(array.dtype, np.bool_):
        return array.astype(np.float64)
    if np.issubdtype(array.dtype, np.signedinteger):
        # no implied full-scale value
        raise InvalidArgumentError(
            f"Signed integer luminance ({array.dtype}) is ambiguous, "
            "cast to an unsigned dtype such as uint8 first"
        )
    if np.issubdtype(array.dtype, np.unsignedinteger):
        return array.astype(np.float64) / float(np.iinfo(array.dtype).max)
    if np.issubdtype(array.dtype, np.floating):
        return array.astype(np.float64)
    raise InvalidArgumentError(f"Unsupported luminance dtype: {array.dtype}")


class ArrayLuminance:
    """A 2D numpy array viewed as a luminance grid.

    Unsigned integer arrays are treated as fixed-point (uint8 0-255, uint16
    0-65535, ...) and scaled by their dtype's maximum. Signed integer
    arrays are rejected. The wrapped values are copied and read-only, so the
    caller's array is never touched.
    """

    def __init__(self, array: np.ndarray) -> None:
        arr = np.asarray(array)
        if arr.ndim != 2:
            raise InvalidArgumentError(
                f"Luminance grid must be 2D, got shape {arr.shape}"
            )
        values = _normalize(arr)
        values.flags.writeable = False
        self._values = values

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def width(self) -> int:
        return int(self._values.shape[1])

    @property
    def height(self) -> int:
        return int(self._values.shape[0])

    def luminance(self, row: int, col: int) -> float:
        return float(self._values[row, col])


def from_image(image: Image.Image) -> ArrayLuminance:
    """Extract luminance from a Pillow image.

    Mode "F" is assumed to already hold [0.0, 1.0] brightness and 16-bit
    grayscale is scaled by 65535. Every other mode (RGB, RGBA, P, 1, ...)
    goes through Pillow's own "L" conversion.
    """
    if image.mode == "F":
        return ArrayLuminance(np.array(image, dtype=np.float64))
    if image.mode.startswith("I;16"):
        return ArrayLuminance(np.array(image, dtype=np.float64) / 65535.0)
    return ArrayLuminance(np.array(image.convert("L"), dtype=np.uint8))


def from_bgr(frame: np.ndarray) -> ArrayLuminance:
    """Extract luminance from an OpenCV frame (BGR, BGRA or already gray)."""
    frame = np.asarray(frame)
    if frame.ndim == 2:
        return ArrayLuminance(frame)
    if frame.ndim != 3 or frame.shape[2] not in (3, 4):
        raise InvalidArgumentError(
            f"Expected a BGR or BGRA frame, got shape {frame.shape}"
        )
    code = cv2.COLOR_BGR2GRAY if frame.shape[2] == 3 else cv2.COLOR_BGRA2GRAY
    return ArrayLuminance(cv2.cvtColor(frame, code))


def as_luminance(source: object) -> LuminanceGrid:
    """Adapt any supported source into a LuminanceGrid.

    Raises:
        InvalidArgumentError: for sources that cannot be adapted.
    """
    if isinstance(source, Image.Image):
        return from_image(source)
    if isinstance(source, np.ndarray):
        return ArrayLuminance(source)
    if isinstance(source, LuminanceGrid):
        return source
    raise InvalidArgumentError(
        f"Cannot read luminance from {type(source).__name__}"
    )


def to_array(grid: LuminanceGrid) -> np.ndarray:
    """Materialize a grid into a float64 (height, width) array.

    Raises:
        InvalidArgumentError: if a custom grid reports values outside
            [0.0, 1.0].
    """
    if isinstance(grid, ArrayLuminance):
        return grid.values
    out = np.empty((grid.height, grid.width), dtype=np.float64)
    for row in range(grid.height):
        for col in range(grid.width):
            out[row, col] = grid.luminance(row, col)
    if not np.all((out >= 0.0) & (out <= 1.0)):
        raise InvalidArgumentError(
            f"{type(grid).__name__} returned luminance outside [0.0, 1.0]"
        )
    return out
