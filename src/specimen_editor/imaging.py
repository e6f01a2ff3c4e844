"""
Decoding of source rasters supplied by the surrounding application.

Sources arrive as raw encoded bytes, a file path, or a ``data:`` URL; all
are decoded with OpenCV into a straight-alpha RGBA :class:`PixelBuffer`.
"""

from __future__ import annotations

import base64
import binascii
import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from .core.buffer import PixelBuffer
from .errors import SourceImageInvalid

logger = logging.getLogger(__name__)

SourceLike = Union[bytes, bytearray, memoryview, str, Path, PixelBuffer]

DATA_URL_PREFIX = "data:"


def decode_data_url(url: str) -> bytes:
    """Return the payload of a base64 ``data:`` URL."""
    header, sep, payload = url.partition(",")
    if not sep or not header.startswith(DATA_URL_PREFIX):
        raise SourceImageInvalid("Malformed data URL")
    if not header.endswith(";base64"):
        raise SourceImageInvalid("Only base64 data URLs are supported")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SourceImageInvalid(f"Invalid base64 payload in data URL: {exc}") from exc


def decode_image_bytes(data: bytes) -> PixelBuffer:
    """Decode an encoded raster (PNG, JPEG, ...) into RGBA."""
    if not data:
        raise SourceImageInvalid("Source image is empty")
    raw = np.frombuffer(bytes(data), dtype=np.uint8)
    array = cv2.imdecode(raw, cv2.IMREAD_UNCHANGED)
    if array is None or array.size == 0:
        raise SourceImageInvalid("Source bytes are not a decodable image")
    return PixelBuffer(_to_rgba8(array))


def _to_rgba8(array: np.ndarray) -> np.ndarray:
    if array.dtype == np.uint16:
        array = (array // 257).astype(np.uint8)
    elif array.dtype != np.uint8:
        raise SourceImageInvalid(f"Unsupported sample type {array.dtype}")

    if array.ndim == 2:
        return cv2.cvtColor(array, cv2.COLOR_GRAY2RGBA)
    channels = array.shape[2]
    if channels == 1:
        return cv2.cvtColor(np.ascontiguousarray(array[..., 0]), cv2.COLOR_GRAY2RGBA)
    if channels == 3:
        return cv2.cvtColor(array, cv2.COLOR_BGR2RGBA)
    if channels == 4:
        return cv2.cvtColor(array, cv2.COLOR_BGRA2RGBA)
    raise SourceImageInvalid(f"Unsupported channel count {channels}")


def load_source(source: SourceLike) -> PixelBuffer:
    """Decode any supported source; failures raise :class:`SourceImageInvalid`."""
    if isinstance(source, PixelBuffer):
        return source.copy()
    if isinstance(source, (bytes, bytearray, memoryview)):
        return decode_image_bytes(bytes(source))
    if isinstance(source, str) and source.startswith(DATA_URL_PREFIX):
        return decode_image_bytes(decode_data_url(source))
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise SourceImageInvalid(f"Cannot read source image {path}: {exc}") from exc
        buffer = decode_image_bytes(data)
        logger.debug("Decoded %s (%dx%d)", path, buffer.width, buffer.height)
        return buffer
    raise SourceImageInvalid(f"Unsupported source type: {type(source).__name__}")
