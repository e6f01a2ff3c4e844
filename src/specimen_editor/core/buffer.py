"""RGBA pixel buffer used by every stage of the editing pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

RGB = Tuple[int, int, int]
RGBA = Tuple[int, int, int, int]

CHANNELS = 4


@dataclass(eq=False)
class PixelBuffer:
    """
    Straight-alpha RGBA8 raster stored as a ``(height, width, 4)`` uint8 array.

    The array is row-major, so ``pixels.tobytes()`` yields the canonical
    ``width * height * 4`` byte layout. A buffer is owned by exactly one stage
    at a time; use :meth:`copy` whenever a snapshot must outlive its owner.
    """

    pixels: np.ndarray

    def __post_init__(self) -> None:
        assert isinstance(self.pixels, np.ndarray), "PixelBuffer requires a numpy array"
        assert self.pixels.dtype == np.uint8, f"Expected uint8 samples, got {self.pixels.dtype}"
        assert (
            self.pixels.ndim == 3 and self.pixels.shape[2] == CHANNELS
        ), f"Expected (height, width, 4) samples, got shape {self.pixels.shape}"

    @classmethod
    def blank(cls, width: int, height: int, fill: RGBA = (0, 0, 0, 0)) -> "PixelBuffer":
        pixels = np.empty((height, width, CHANNELS), dtype=np.uint8)
        pixels[...] = np.asarray(fill, dtype=np.uint8)
        return cls(pixels)

    @classmethod
    def from_bytes(cls, width: int, height: int, data: bytes) -> "PixelBuffer":
        """Wrap a row-major RGBA8 byte sequence; a length mismatch is a programming error."""
        assert len(data) == width * height * CHANNELS, (
            f"Buffer length {len(data)} does not match {width}x{height}x{CHANNELS}"
        )
        pixels = np.frombuffer(data, dtype=np.uint8).reshape(height, width, CHANNELS)
        return cls(pixels.copy())

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def alpha(self) -> np.ndarray:
        """View of the alpha channel (writes go through to the buffer)."""
        return self.pixels[..., 3]

    @property
    def data(self) -> bytes:
        return self.pixels.tobytes()

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.pixels.copy())

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def pixel(self, x: int, y: int) -> RGBA:
        r, g, b, a = self.pixels[y, x]
        return int(r), int(g), int(b), int(a)

    def transparent_count(self) -> int:
        return int(np.count_nonzero(self.pixels[..., 3] == 0))

    def equals(self, other: "PixelBuffer") -> bool:
        """Byte-for-byte comparison."""
        return self.pixels.shape == other.pixels.shape and bool(
            np.array_equal(self.pixels, other.pixels)
        )
