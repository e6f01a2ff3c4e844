"""Canvas rendering helpers."""

from .pixmap_utils import buffer_to_pixmap, composite_on_checkerboard

__all__ = ["buffer_to_pixmap", "composite_on_checkerboard"]
