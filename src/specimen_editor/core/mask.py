"""
Destructive masking operations and the engine that records them.

Every committed operation reads the current history top, produces a new
buffer and pushes it; history entries are never edited in place. The only
buffer that is mutated directly is the private copy owned by an in-progress
brush stroke, which is pushed once on release.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import SessionStateError
from .buffer import RGB, PixelBuffer
from .history import HistoryStack

logger = logging.getLogger(__name__)

# Maps the 0..100 tolerance slider onto RGB distance (max ~441).
TOLERANCE_SCALE = 2.5
MIN_TOLERANCE = 0.0
MAX_TOLERANCE = 100.0
DEFAULT_TOLERANCE = 20.0
DEFAULT_TARGET: RGB = (255, 255, 255)

MIN_BRUSH_SIZE = 5
MAX_BRUSH_SIZE = 80
DEFAULT_BRUSH_SIZE = 20

WHITE_THRESHOLD = 240

Point = Tuple[float, float]


@dataclass(frozen=True)
class MagicWand:
    """Clear every visible pixel closer than ``tolerance * 2.5`` to ``target``."""

    target: RGB
    tolerance: float


@dataclass(frozen=True)
class BrushStroke:
    """One pointer drag: circles of ``radius`` stamped at each sample."""

    points: Tuple[Point, ...]
    radius: float


MaskOperation = Union[MagicWand, BrushStroke]


def wand_threshold(tolerance: float) -> float:
    if not MIN_TOLERANCE <= tolerance <= MAX_TOLERANCE:
        raise ValueError(
            f"Tolerance must be within [{MIN_TOLERANCE:g}, {MAX_TOLERANCE:g}], got {tolerance}"
        )
    return float(tolerance) * TOLERANCE_SCALE


def magic_wand_mask(buffer: PixelBuffer, target: RGB, tolerance: float) -> np.ndarray:
    """Boolean ``(height, width)`` array of pixels the wand would clear."""
    threshold = wand_threshold(tolerance)
    diff = buffer.pixels[..., :3].astype(np.int32) - np.asarray(target, dtype=np.int32)
    distance_sq = np.einsum("ijk,ijk->ij", diff, diff)
    return (buffer.alpha != 0) & (distance_sq < threshold * threshold)


def apply_magic_wand(buffer: PixelBuffer, target: RGB, tolerance: float) -> PixelBuffer:
    """Return a copy of ``buffer`` with matching pixels made fully transparent."""
    result = buffer.copy()
    result.alpha[magic_wand_mask(buffer, target, tolerance)] = 0
    return result


def apply_brush(buffer: PixelBuffer, center: Point, radius: float) -> bool:
    """
    Erase a filled circle in place; returns whether any alpha changed.

    Pixels whose centre lies within ``radius`` of ``center`` become fully
    transparent, so pixel ``(i, j)`` is tested at ``(i + 0.5, j + 0.5)``. Circles that only partly overlap the buffer are clipped.
    """
    if radius <= 0:
        return False
    cx, cy = float(center[0]), float(center[1])
    x_min = max(0, int(math.floor(cx - radius)))
    x_max = min(buffer.width, int(math.ceil(cx + radius)) + 1)
    y_min = max(0, int(math.floor(cy - radius)))
    y_max = min(buffer.height, int(math.ceil(cy + radius)) + 1)
    if x_min >= x_max or y_min >= y_max:
        return False

    sub = buffer.alpha[y_min:y_max, x_min:x_max]
    yy, xx = np.ogrid[y_min:y_max, x_min:x_max]
    inside = (xx + 0.5 - cx) ** 2 + (yy + 0.5 - cy) ** 2 <= radius**2
    changed = bool(np.any(sub[inside] != 0))
    sub[inside] = 0
    return changed


def stamp_segment(buffer: PixelBuffer, start: Point, end: Point, radius: float) -> bool:
    """Stamp circles from ``start`` to ``end`` so fast drags leave no gaps."""
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    distance = (dx**2 + dy**2) ** 0.5
    step = max(radius * 0.5, 1.0)
    samples = max(int(distance / step), 1)
    changed = False
    for i in range(samples + 1):
        t = i / samples
        if apply_brush(buffer, (start[0] + dx * t, start[1] + dy * t), radius):
            changed = True
    return changed


def apply_stroke(
    buffer: PixelBuffer,
    points: Sequence[Point],
    radius: float,
    interpolate: bool = True,
) -> PixelBuffer:
    """Replay a whole stroke onto a copy of ``buffer``."""
    result = buffer.copy()
    previous: Optional[Point] = None
    for point in points:
        if previous is None or not interpolate:
            apply_brush(result, point, radius)
        else:
            stamp_segment(result, previous, point, radius)
        previous = point
    return result


def apply_operation(
    buffer: PixelBuffer, operation: MaskOperation, interpolate: bool = True
) -> PixelBuffer:
    if isinstance(operation, MagicWand):
        return apply_magic_wand(buffer, operation.target, operation.tolerance)
    if isinstance(operation, BrushStroke):
        return apply_stroke(buffer, operation.points, operation.radius, interpolate=interpolate)
    raise TypeError(f"Unsupported mask operation: {operation!r}")


def remove_white_background(buffer: PixelBuffer, threshold: int = WHITE_THRESHOLD) -> PixelBuffer:
    """Clear alpha wherever R, G and B all exceed ``threshold``."""
    result = buffer.copy()
    rgb = buffer.pixels[..., :3]
    result.alpha[np.all(rgb > threshold, axis=-1)] = 0
    return result


def brush_radius(size: float) -> float:
    """Brush sizes are diameters."""
    return float(size) / 2.0


class MaskEngine:
    """
    Applies masking tools against a :class:`HistoryStack`.

    Magic wand follows pick-then-apply: a click samples the target colour and
    commits one entry. Tolerance changes can be previewed without touching the
    history and committed on release. Brush strokes mutate a private copy of
    the top buffer and are pushed as a single entry by :meth:`end_stroke`.
    """

    def __init__(
        self,
        history: HistoryStack,
        tolerance: float = DEFAULT_TOLERANCE,
        brush_size: float = DEFAULT_BRUSH_SIZE,
        target: RGB = DEFAULT_TARGET,
        interpolate: bool = True,
    ) -> None:
        self._history = history
        self._target: RGB = tuple(int(c) for c in target)  # type: ignore[assignment]
        self._interpolate = interpolate
        self._picked = False
        self._preview: Optional[PixelBuffer] = None
        self._stroke_buffer: Optional[PixelBuffer] = None
        self._stroke_points: list[Point] = []
        self.tolerance = tolerance
        self.brush_size = brush_size

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def history(self) -> HistoryStack:
        return self._history

    @property
    def target_color(self) -> RGB:
        return self._target

    @property
    def has_picked_target(self) -> bool:
        """Whether a click has sampled the target; tolerance changes only re-apply after one."""
        return self._picked

    @property
    def tolerance(self) -> float:
        return self._tolerance

    @tolerance.setter
    def tolerance(self, value: float) -> None:
        wand_threshold(value)
        self._tolerance = float(value)

    @property
    def brush_size(self) -> float:
        return self._brush_size

    @brush_size.setter
    def brush_size(self, value: float) -> None:
        if value <= 0:
            raise ValueError(f"Brush size must be positive, got {value}")
        self._brush_size = float(value)

    @property
    def brush_radius(self) -> float:
        return brush_radius(self._brush_size)

    @property
    def is_stroking(self) -> bool:
        return self._stroke_buffer is not None

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    def current(self) -> PixelBuffer:
        """Buffer to display: in-progress stroke, then wand preview, then history top."""
        if self._stroke_buffer is not None:
            return self._stroke_buffer
        if self._preview is not None:
            return self._preview
        return self._history.top()

    # ------------------------------------------------------------------
    # Magic wand
    # ------------------------------------------------------------------
    def pick_target(self, x: int, y: int) -> Optional[RGB]:
        """Sample the visible top at ``(x, y)``; transparent or outside pixels yield None."""
        top = self._history.top()
        if not top.contains(x, y):
            return None
        r, g, b, a = top.pixel(x, y)
        if a == 0:
            return None
        self._target = (r, g, b)
        self._picked = True
        return self._target

    def pick_and_apply(self, x: int, y: int, tolerance: Optional[float] = None) -> Optional[PixelBuffer]:
        self._ensure_idle()
        if self.pick_target(x, y) is None:
            logger.debug("Ignoring wand pick on transparent pixel (%d, %d)", x, y)
            return None
        return self.commit_magic_wand(tolerance)

    def preview_magic_wand(self, tolerance: float) -> PixelBuffer:
        self._ensure_idle()
        self.tolerance = tolerance
        self._preview = apply_magic_wand(self._history.top(), self._target, self._tolerance)
        return self._preview

    def commit_magic_wand(self, tolerance: Optional[float] = None) -> PixelBuffer:
        self._ensure_idle()
        if tolerance is not None:
            self.tolerance = tolerance
        return self.apply(MagicWand(self._target, self._tolerance))

    def discard_preview(self) -> None:
        self._preview = None

    # ------------------------------------------------------------------
    # Brush
    # ------------------------------------------------------------------
    def begin_stroke(self, x: float, y: float) -> None:
        self._ensure_idle()
        self._preview = None
        self._stroke_buffer = self._history.top().copy()
        self._stroke_points = [(float(x), float(y))]
        apply_brush(self._stroke_buffer, self._stroke_points[0], self.brush_radius)

    def stroke_to(self, x: float, y: float) -> None:
        if self._stroke_buffer is None:
            raise SessionStateError("No brush stroke in progress")
        point = (float(x), float(y))
        if self._interpolate:
            stamp_segment(self._stroke_buffer, self._stroke_points[-1], point, self.brush_radius)
        else:
            apply_brush(self._stroke_buffer, point, self.brush_radius)
        self._stroke_points.append(point)

    def end_stroke(self) -> Optional[BrushStroke]:
        """Push the accumulated stroke as one entry; returns the recorded operation."""
        if self._stroke_buffer is None:
            return None
        stroke = BrushStroke(tuple(self._stroke_points), self.brush_radius)
        self._history.push(self._stroke_buffer)
        logger.debug("Brush stroke of %d samples committed", len(stroke.points))
        self._stroke_buffer = None
        self._stroke_points = []
        return stroke

    def cancel_stroke(self) -> None:
        self._stroke_buffer = None
        self._stroke_points = []

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    def apply(self, operation: MaskOperation) -> PixelBuffer:
        """Apply ``operation`` to the top buffer and push the result."""
        self._ensure_idle()
        self._preview = None
        result = apply_operation(self._history.top(), operation, interpolate=self._interpolate)
        self._history.push(result)
        logger.debug("Applied %s", type(operation).__name__)
        return self._history.top()

    def undo(self) -> bool:
        self.cancel_stroke()
        self._preview = None
        return self._history.undo()

    def reset(self) -> None:
        self.cancel_stroke()
        self._preview = None
        self._history.reset()

    def _ensure_idle(self) -> None:
        if self._stroke_buffer is not None:
            raise SessionStateError("Finish the current brush stroke first")
