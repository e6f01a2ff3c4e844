"""Pure image-editing engine: framing, masking, history and pin overlay."""

from .buffer import PixelBuffer
from .history import HistoryStack
from .mask import (
    BrushStroke,
    MagicWand,
    MaskEngine,
    MaskOperation,
    apply_brush,
    apply_magic_wand,
    remove_white_background,
)
from .pin import ImageBounds, PinOverlay, PinPosition, place, to_display_coordinates
from .session import EditorSession, Phase
from .transform import Checkerboard, TransformState, commit, render

__all__ = [
    "PixelBuffer",
    "HistoryStack",
    "BrushStroke",
    "MagicWand",
    "MaskEngine",
    "MaskOperation",
    "apply_brush",
    "apply_magic_wand",
    "remove_white_background",
    "ImageBounds",
    "PinOverlay",
    "PinPosition",
    "place",
    "to_display_coordinates",
    "EditorSession",
    "Phase",
    "Checkerboard",
    "TransformState",
    "commit",
    "render",
]
