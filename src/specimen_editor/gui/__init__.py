"""Qt front-end for the specimen editor."""

from .widgets import PinningWidget, SpecimenEditorDialog

__all__ = ["PinningWidget", "SpecimenEditorDialog"]
