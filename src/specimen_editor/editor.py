"""Entry points that connect the surrounding application to the engine."""

from __future__ import annotations

import logging
from typing import Optional

from .config import BrushConfig, EditRecipe, MagicWandConfig
from .core.mask import BrushStroke, MagicWand, brush_radius, remove_white_background
from .core.session import EditorSession
from .errors import RecipeError
from .imaging import SourceLike, load_source
from .settings import EditorSettings, get_settings

logger = logging.getLogger(__name__)


def open_editor(source: SourceLike, settings: Optional[EditorSettings] = None) -> EditorSession:
    """
    Decode ``source`` and start a framing session.

    Decoding happens first, so an invalid source raises
    :class:`~specimen_editor.errors.SourceImageInvalid` before any state exists.
    """
    settings = settings or get_settings()
    buffer = load_source(source)
    logger.debug("Opening editor for %dx%d source", buffer.width, buffer.height)
    return EditorSession(
        buffer,
        canvas_size=settings.canvas_size,
        checkerboard=settings.checkerboard(),
        commit_checkerboard=settings.commit_checkerboard,
        tolerance=settings.default_tolerance,
        brush_size=settings.default_brush_size,
        interpolate=settings.brush_interpolation,
    )


def replay_recipe(
    recipe: EditRecipe,
    source: SourceLike,
    settings: Optional[EditorSettings] = None,
) -> EditorSession:
    """Run a full edit headlessly and return the committed session."""
    buffer = load_source(source)
    if recipe.prefilter_white is not None:
        buffer = remove_white_background(buffer, recipe.prefilter_white)
    session = open_editor(buffer, settings)

    session.set_scale(recipe.transform.scale)
    session.transform.rotate_by(recipe.transform.rotation_degrees)
    session.transform.pan_to(*recipe.transform.translation)
    session.commit()

    engine = session.engine
    for index, operation in enumerate(recipe.operations):
        if isinstance(operation, MagicWandConfig):
            if operation.pick is not None:
                x, y = operation.pick
                if engine.pick_and_apply(x, y, operation.tolerance) is None:
                    logger.warning(
                        "Operation %d: pick at (%d, %d) hit a transparent pixel; skipped",
                        index,
                        x,
                        y,
                    )
            else:
                engine.apply(MagicWand(tuple(operation.target), operation.tolerance))
        elif isinstance(operation, BrushConfig):
            engine.apply(BrushStroke(tuple(operation.points), brush_radius(operation.size)))
        else:
            raise RecipeError(f"Operation {index}: unsupported type {type(operation).__name__}")

    if recipe.pin is not None:
        session.pin_overlay.set_pin(recipe.pin.to_position())
    logger.info(
        "Replayed recipe '%s': %d operation(s), %d history entries",
        recipe.name,
        len(recipe.operations),
        len(session.history),
    )
    return session
