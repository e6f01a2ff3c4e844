"""
Specimen photo editor.

Frames a source photograph on a fixed working canvas, removes its background
with a magic wand and an eraser brush (with undo), and records a
resolution-independent pin on the result. The Qt front-end lives in
:mod:`specimen_editor.gui` and is imported lazily.
"""

from .config import EditRecipe, load_edit_recipe
from .core import (
    BrushStroke,
    EditorSession,
    HistoryStack,
    ImageBounds,
    MagicWand,
    MaskEngine,
    Phase,
    PinOverlay,
    PinPosition,
    PixelBuffer,
    TransformState,
    apply_brush,
    apply_magic_wand,
    place,
    remove_white_background,
    to_display_coordinates,
)
from .editor import open_editor, replay_recipe
from .errors import (
    NothingToExport,
    RecipeError,
    SessionStateError,
    SourceImageInvalid,
    SpecimenEditorError,
)
from .exporters import encode_png, export_data_url, export_outputs, export_png
from .imaging import load_source
from .settings import EditorSettings, get_settings, reset_settings_cache

__all__ = [
    "EditRecipe",
    "load_edit_recipe",
    "BrushStroke",
    "EditorSession",
    "HistoryStack",
    "ImageBounds",
    "MagicWand",
    "MaskEngine",
    "Phase",
    "PinOverlay",
    "PinPosition",
    "PixelBuffer",
    "TransformState",
    "apply_brush",
    "apply_magic_wand",
    "place",
    "remove_white_background",
    "to_display_coordinates",
    "open_editor",
    "replay_recipe",
    "NothingToExport",
    "RecipeError",
    "SessionStateError",
    "SourceImageInvalid",
    "SpecimenEditorError",
    "encode_png",
    "export_data_url",
    "export_outputs",
    "export_png",
    "load_source",
    "EditorSettings",
    "get_settings",
    "reset_settings_cache",
]
