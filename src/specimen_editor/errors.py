"""Exception hierarchy shared by the editing engine and its adapters."""

from __future__ import annotations


class SpecimenEditorError(RuntimeError):
    """Base class for recoverable editor failures."""


class SourceImageInvalid(SpecimenEditorError, ValueError):
    """Raised when the supplied source raster cannot be decoded."""


class NothingToExport(SpecimenEditorError):
    """Raised when an export is requested before the transform was committed."""


class SessionStateError(SpecimenEditorError):
    """Raised when a session operation is called in the wrong phase."""


class RecipeError(SpecimenEditorError):
    """Raised when an edit recipe cannot be loaded or replayed."""
