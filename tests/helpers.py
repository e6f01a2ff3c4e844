from __future__ import annotations

import cv2

from specimen_editor.core.buffer import PixelBuffer


def solid(width: int, height: int, rgba=(255, 255, 255, 255)) -> PixelBuffer:
    return PixelBuffer.blank(width, height, fill=rgba)


def png_bytes(buffer: PixelBuffer) -> bytes:
    ok, encoded = cv2.imencode(".png", cv2.cvtColor(buffer.pixels, cv2.COLOR_RGBA2BGRA))
    assert ok
    return encoded.tobytes()
