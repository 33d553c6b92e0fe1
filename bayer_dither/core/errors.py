"""Error types raised by the dithering core."""

from __future__ import annotations


class InvalidArgumentError(ValueError):
    """Raised when a level, threshold map or luminance source is unusable.

    Always raised before any pixel is processed, so a failed call leaves no
    partial output behind.
    """
