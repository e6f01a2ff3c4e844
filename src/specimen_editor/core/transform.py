"""
Framing stage: composite a source raster onto the fixed working canvas.

The source is drawn centred at the origin after the canvas transform
``translate(centre) -> translate(pan) -> rotate -> scale``, so rotation and
zoom pivot around the canvas centre no matter how far the image was panned.
Nothing is clamped; pixels the image does not cover keep the checkerboard.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from .buffer import RGB, PixelBuffer

logger = logging.getLogger(__name__)

MIN_SCALE = 0.5
MAX_SCALE = 3.0
SCALE_STEP = 0.1
ROTATION_STEP_DEGREES = 90.0


@dataclass
class TransformState:
    """Pan/zoom/rotation of the source on the working canvas."""

    scale: float = 1.0
    rotation_degrees: float = 0.0
    translation: Tuple[float, float] = (0.0, 0.0)

    def __post_init__(self) -> None:
        self.set_scale(self.scale)

    @property
    def normalized_rotation(self) -> float:
        return self.rotation_degrees % 360.0

    def set_scale(self, scale: float) -> None:
        if scale <= 0 or not math.isfinite(scale):
            raise ValueError(f"Scale must be a positive finite number, got {scale}")
        self.scale = float(scale)

    def rotate_by(self, degrees: float) -> None:
        self.rotation_degrees += float(degrees)

    def pan_to(self, x: float, y: float) -> None:
        self.translation = (float(x), float(y))

    def pan_by(self, dx: float, dy: float) -> None:
        tx, ty = self.translation
        self.translation = (tx + float(dx), ty + float(dy))

    def reset(self) -> None:
        self.scale = 1.0
        self.rotation_degrees = 0.0
        self.translation = (0.0, 0.0)


@dataclass(frozen=True)
class Checkerboard:
    """Opaque two-tone grid painted under the source while framing."""

    cell_size: int = 10
    light: RGB = (243, 244, 246)
    dark: RGB = (229, 231, 235)

    def paint(self, width: int, height: int) -> np.ndarray:
        """Return an ``(height, width, 3)`` uint8 grid; even cells are dark."""
        size = max(1, int(self.cell_size))
        rows = (np.arange(height) // size)[:, None]
        cols = (np.arange(width) // size)[None, :]
        dark_cells = (rows + cols) % 2 == 0
        grid = np.empty((height, width, 3), dtype=np.uint8)
        grid[...] = np.asarray(self.light, dtype=np.uint8)
        grid[dark_cells] = np.asarray(self.dark, dtype=np.uint8)
        return grid


DEFAULT_CHECKERBOARD = Checkerboard()


def affine_matrix(
    state: TransformState,
    source_size: Tuple[int, int],
    canvas_size: Tuple[int, int],
) -> np.ndarray:
    """
    Build the 2x3 source->canvas matrix in OpenCV pixel-centre convention.

    Canvas drawing maps continuous pixel corners; OpenCV samples at pixel
    centres, hence the half-pixel correction on the offset.
    """
    source_w, source_h = source_size
    canvas_w, canvas_h = canvas_size
    theta = math.radians(state.normalized_rotation)
    # Keep quarter turns exact so they do not resample.
    cos_t = round(math.cos(theta), 12) * state.scale
    sin_t = round(math.sin(theta), 12) * state.scale
    linear = np.array([[cos_t, -sin_t], [sin_t, cos_t]], dtype=np.float64)

    tx, ty = state.translation
    origin = np.array([canvas_w / 2.0 + tx, canvas_h / 2.0 + ty])
    offset = origin - linear @ np.array([source_w / 2.0, source_h / 2.0])
    offset = offset + linear @ np.array([0.5, 0.5]) - 0.5
    return np.hstack([linear, offset[:, None]])


def _visible_region(
    matrix: np.ndarray, source_size: Tuple[int, int], canvas_size: Tuple[int, int]
) -> Optional[Tuple[int, int, int, int]]:
    """Source rectangle ``(x0, y0, x1, y1)`` that any canvas sample can touch, or None."""
    inverse = cv2.invertAffineTransform(matrix)
    canvas_w, canvas_h = canvas_size
    corners = np.array(
        [[-1.0, -1.0, 1.0], [canvas_w, -1.0, 1.0], [-1.0, canvas_h, 1.0], [canvas_w, canvas_h, 1.0]]
    )
    mapped = corners @ inverse.T
    source_w, source_h = source_size
    x0 = max(0, int(math.floor(mapped[:, 0].min())) - 2)
    y0 = max(0, int(math.floor(mapped[:, 1].min())) - 2)
    x1 = min(source_w, int(math.ceil(mapped[:, 0].max())) + 3)
    y1 = min(source_h, int(math.ceil(mapped[:, 1].max())) + 3)
    if x0 >= x1 or y0 >= y1:
        return None
    return x0, y0, x1, y1


def _premultiply(pixels: np.ndarray) -> np.ndarray:
    """Exact integer premultiplication: colour becomes ``c * a``, alpha becomes ``a * 255``."""
    rgba = pixels.astype(np.uint16)
    rgba[..., :3] *= rgba[..., 3:4]
    rgba[..., 3] *= 255
    return rgba


def render(
    source: PixelBuffer,
    state: TransformState,
    canvas_size: Tuple[int, int],
    checkerboard: Optional[Checkerboard] = DEFAULT_CHECKERBOARD,
) -> PixelBuffer:
    """
    Composite ``source`` onto a fresh canvas of ``canvas_size`` (width, height).

    With ``checkerboard=None`` the uncovered area stays fully transparent and
    partially covered edge pixels keep their coverage as alpha. Only the part
    of the source that lands on the canvas is resampled, so the cost follows
    the canvas rather than the photo.
    """
    canvas_w, canvas_h = int(canvas_size[0]), int(canvas_size[1])
    if canvas_w <= 0 or canvas_h <= 0:
        raise ValueError(f"Canvas size must be positive, got {canvas_size}")

    matrix = affine_matrix(state, source.size, (canvas_w, canvas_h))
    region = _visible_region(matrix, source.size, (canvas_w, canvas_h))
    if region is None:
        warped = np.zeros((canvas_h, canvas_w, 4), dtype=np.float32)
    else:
        x0, y0, x1, y1 = region
        shifted = matrix.copy()
        shifted[:, 2] += matrix[:, :2] @ np.array([x0, y0], dtype=np.float64)
        # Resample premultiplied colour so transparent borders do not bleed dark fringes.
        warped = cv2.warpAffine(
            _premultiply(source.pixels[y0:y1, x0:x1]),
            shifted,
            (canvas_w, canvas_h),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=(0, 0, 0, 0),
        ).astype(np.float32)
    colour = warped[..., :3] / 255.0
    alpha = np.clip(warped[..., 3:4] / (255.0 * 255.0), 0.0, 1.0)

    out = np.empty((canvas_h, canvas_w, 4), dtype=np.uint8)
    if checkerboard is not None:
        background = checkerboard.paint(canvas_w, canvas_h).astype(np.float32)
        composed = colour + background * (1.0 - alpha)
        out[..., :3] = np.clip(np.rint(composed), 0, 255).astype(np.uint8)
        out[..., 3] = 255
    else:
        straight = np.where(alpha > 0, colour / np.maximum(alpha, 1e-6), 0.0)
        out[..., :3] = np.clip(np.rint(straight), 0, 255).astype(np.uint8)
        out[..., 3] = np.clip(np.rint(alpha[..., 0] * 255.0), 0, 255).astype(np.uint8)
    return PixelBuffer(out)


def commit(
    source: PixelBuffer,
    state: TransformState,
    canvas_size: Tuple[int, int],
    checkerboard: Optional[Checkerboard] = DEFAULT_CHECKERBOARD,
) -> PixelBuffer:
    """Final render that seeds the masking history."""
    buffer = render(source, state, canvas_size, checkerboard=checkerboard)
    logger.info(
        "Committed %dx%d source at scale %.2f, rotation %.1f°, pan (%.1f, %.1f)",
        source.width,
        source.height,
        state.scale,
        state.normalized_rotation,
        *state.translation,
    )
    return buffer
