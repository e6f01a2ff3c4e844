"""Shared helpers for turning pixel buffers into displayable images."""

from __future__ import annotations

from typing import Optional

import numpy as np
from PySide6.QtGui import QImage, QPixmap

from ...core.buffer import PixelBuffer
from ...core.transform import Checkerboard


def composite_on_checkerboard(buffer: PixelBuffer, checkerboard: Optional[Checkerboard]) -> np.ndarray:
    """Flatten ``buffer`` over a checkerboard for display; the buffer is not modified."""
    if checkerboard is None:
        return buffer.pixels.copy()
    grid = checkerboard.paint(buffer.width, buffer.height).astype(np.float32)
    alpha = buffer.pixels[..., 3:4].astype(np.float32) / 255.0
    colour = buffer.pixels[..., :3].astype(np.float32)
    rgba = np.empty_like(buffer.pixels)
    rgba[..., :3] = np.clip(np.rint(colour * alpha + grid * (1.0 - alpha)), 0, 255).astype(np.uint8)
    rgba[..., 3] = 255
    return rgba


def buffer_to_pixmap(buffer: PixelBuffer) -> QPixmap:
    """Build a pixmap that keeps the buffer's transparency."""
    rgba = buffer.pixels.copy()
    height, width = rgba.shape[:2]
    qimage = QImage(rgba.data, width, height, width * 4, QImage.Format_RGBA8888)
    return QPixmap.fromImage(qimage.copy())
