"""GUI widgets for the specimen editor."""

from .editor_dialog import SpecimenEditorDialog
from .pinning_widget import PinningWidget

__all__ = [
    "SpecimenEditorDialog",
    "PinningWidget",
]
