"""
Output exporters for finished edits.

The final raster is always written as PNG so transparency survives; the pin,
when present, travels next to it as a small JSON sidecar.
"""

from __future__ import annotations

import base64
import json
import logging
from pathlib import Path
from typing import Optional, Union

import cv2

from .core.buffer import PixelBuffer
from .core.pin import PinPosition
from .core.session import EditorSession
from .errors import NothingToExport

logger = logging.getLogger(__name__)

PNG_DATA_URL_PREFIX = "data:image/png;base64,"
PIN_SUFFIX = ".pin.json"

Exportable = Union[EditorSession, PixelBuffer, None]


def _final_buffer(source: Exportable) -> PixelBuffer:
    if source is None:
        raise NothingToExport("No committed image to export")
    if isinstance(source, EditorSession):
        return source.result()
    return source


def encode_png(buffer: PixelBuffer) -> bytes:
    """Encode a straight-alpha RGBA buffer losslessly."""
    bgra = cv2.cvtColor(buffer.pixels, cv2.COLOR_RGBA2BGRA)
    ok, encoded = cv2.imencode(".png", bgra)
    if not ok:
        raise IOError("PNG encoding failed")
    return encoded.tobytes()


def export_png(source: Exportable) -> bytes:
    return encode_png(_final_buffer(source))


def export_data_url(source: Exportable) -> str:
    """PNG as a ``data:`` URL, the form the collection app stores images in."""
    payload = base64.b64encode(export_png(source)).decode("ascii")
    return PNG_DATA_URL_PREFIX + payload


def sanitize_name(name: str, fallback: str = "specimen") -> str:
    safe = "".join(ch if ch.isalnum() or ch in ("-", "_") else "_" for ch in name.strip().lower())
    return safe or fallback


def pin_sidecar_path(image_path: Path) -> Path:
    return image_path.with_name(image_path.stem + PIN_SUFFIX)


def write_pin_sidecar(image_path: Path, pin: Optional[PinPosition]) -> Optional[Path]:
    """Write or remove the pin sidecar so it never goes stale."""
    sidecar = pin_sidecar_path(image_path)
    if pin is None:
        if sidecar.exists():
            sidecar.unlink()
            logger.debug("Removed stale pin sidecar %s", sidecar)
        return None
    with sidecar.open("w", encoding="utf-8") as handle:
        json.dump(pin.to_dict(), handle, indent=2)
    return sidecar


def read_pin_sidecar(image_path: Path) -> Optional[PinPosition]:
    sidecar = pin_sidecar_path(image_path)
    if not sidecar.exists():
        return None
    with sidecar.open("r", encoding="utf-8") as handle:
        return PinPosition.from_dict(json.load(handle))


def export_outputs(
    source: Exportable,
    output_dir: Path,
    name: str,
    pin: Optional[PinPosition] = None,
) -> Path:
    """
    Write ``<name>.png`` (and ``<name>.pin.json`` when a pin exists) to ``output_dir``.

    Returns the path of the PNG.
    """
    data = export_png(source)
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    image_path = output_dir / f"{sanitize_name(name)}.png"
    image_path.write_bytes(data)
    write_pin_sidecar(image_path, pin)
    logger.info("Exported %s%s", image_path, " with pin" if pin is not None else "")
    return image_path
