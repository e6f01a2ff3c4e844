"""
Resolution-independent pin placement.

A pin is stored as percentages of the displayed image box, so the same value
renders correctly on a thumbnail, in a modal or in print. Both conversions
are pure functions of the pin and the box the caller is currently showing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

Point = Tuple[float, float]

SHADOW_OFFSET_PERCENT = 2.0
DEFAULT_MARKER_SIZE = 16.0


@dataclass(frozen=True)
class ImageBounds:
    """On-screen bounding box of the displayed image."""

    left: float
    top: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Bounds must have a positive size, got {self.width}x{self.height}")

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def contains(self, point: Point) -> bool:
        x, y = point
        return self.left <= x <= self.right and self.top <= y <= self.bottom


@dataclass(frozen=True)
class PinPosition:
    """Percentage offsets (nominally 0..100) within the displayed image."""

    x: float
    y: float

    def clamped(self) -> "PinPosition":
        return PinPosition(min(100.0, max(0.0, self.x)), min(100.0, max(0.0, self.y)))

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["PinPosition"]:
        """Both coordinates or nothing; a half-defined pin is treated as absent."""
        if not data:
            return None
        x = data.get("x")
        y = data.get("y")
        if x is None or y is None:
            return None
        return cls(float(x), float(y))


def place(pointer: Point, bounds: ImageBounds) -> PinPosition:
    """
    Convert a pointer position to pin percentages.

    Values are not clamped: callers only place pins while the pointer is over
    the image, which keeps the result within 0..100.
    """
    x = (pointer[0] - bounds.left) / bounds.width * 100.0
    y = (pointer[1] - bounds.top) / bounds.height * 100.0
    return PinPosition(x, y)


def to_display_coordinates(pin: PinPosition, bounds: ImageBounds) -> Point:
    """Inverse of :func:`place` for the given display box."""
    return (
        bounds.left + pin.x / 100.0 * bounds.width,
        bounds.top + pin.y / 100.0 * bounds.height,
    )


def shadow_position(pin: PinPosition, offset: float = SHADOW_OFFSET_PERCENT) -> PinPosition:
    return PinPosition(pin.x + offset, pin.y + offset)


def marker_geometry(
    pin: PinPosition, bounds: ImageBounds, marker_size: float = DEFAULT_MARKER_SIZE
) -> Tuple[float, float, float, float]:
    """(left, top, width, height) of a round marker centred on the pin."""
    cx, cy = to_display_coordinates(pin, bounds)
    half = marker_size / 2.0
    return cx - half, cy - half, marker_size, marker_size


class PinOverlay:
    """Holds the single pin of one image; placing again overwrites it."""

    def __init__(self, pin: Optional[PinPosition] = None) -> None:
        self._pin = pin

    @property
    def pin(self) -> Optional[PinPosition]:
        return self._pin

    def place(self, pointer: Point, bounds: ImageBounds) -> PinPosition:
        self._pin = place(pointer, bounds)
        return self._pin

    def set_pin(self, pin: Optional[PinPosition]) -> None:
        self._pin = pin

    def marker_position(self, bounds: ImageBounds) -> Optional[Point]:
        if self._pin is None:
            return None
        return to_display_coordinates(self._pin, bounds)

    def clear(self) -> None:
        self._pin = None
