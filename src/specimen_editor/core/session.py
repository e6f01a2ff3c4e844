"""One editing session: framing, then masking, then export."""

from __future__ import annotations

import enum
import logging
from typing import Optional, Tuple

from ..errors import NothingToExport, SessionStateError
from .buffer import RGB, PixelBuffer
from .history import HistoryStack
from .mask import DEFAULT_BRUSH_SIZE, DEFAULT_TARGET, DEFAULT_TOLERANCE, MaskEngine
from .pin import PinOverlay
from .transform import (
    DEFAULT_CHECKERBOARD,
    ROTATION_STEP_DEGREES,
    Checkerboard,
    TransformState,
    commit,
    render,
)

logger = logging.getLogger(__name__)

DEFAULT_CANVAS_SIZE = (600, 600)


class Phase(enum.Enum):
    FRAMING = "framing"
    MASKING = "masking"
    CLOSED = "closed"


class EditorSession:
    """
    Drives a source image through framing and masking.

    While framing, the transform state may change freely and :meth:`preview`
    re-renders on demand. :meth:`commit` happens once and seeds the history;
    from then on all edits go through :attr:`engine`.
    """

    def __init__(
        self,
        source: PixelBuffer,
        canvas_size: Tuple[int, int] = DEFAULT_CANVAS_SIZE,
        checkerboard: Optional[Checkerboard] = DEFAULT_CHECKERBOARD,
        commit_checkerboard: bool = True,
        tolerance: float = DEFAULT_TOLERANCE,
        brush_size: float = DEFAULT_BRUSH_SIZE,
        target: RGB = DEFAULT_TARGET,
        interpolate: bool = True,
    ) -> None:
        self._source = source
        self.canvas_size = (int(canvas_size[0]), int(canvas_size[1]))
        self.checkerboard = checkerboard
        self.commit_checkerboard = commit_checkerboard
        self.transform = TransformState()
        self.pin_overlay = PinOverlay()
        self._engine_defaults = dict(
            tolerance=tolerance, brush_size=brush_size, target=target, interpolate=interpolate
        )
        self._phase = Phase.FRAMING
        self._drag_origin: Optional[Tuple[float, float]] = None
        self._history: Optional[HistoryStack] = None
        self._engine: Optional[MaskEngine] = None

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def source(self) -> PixelBuffer:
        return self._source

    @property
    def history(self) -> Optional[HistoryStack]:
        return self._history

    @property
    def engine(self) -> MaskEngine:
        if self._engine is None:
            raise SessionStateError("Commit the framing before masking")
        return self._engine

    # ------------------------------------------------------------------
    # Framing
    # ------------------------------------------------------------------
    def preview(self) -> PixelBuffer:
        self._require(Phase.FRAMING)
        return render(self._source, self.transform, self.canvas_size, checkerboard=self.checkerboard)

    def set_scale(self, scale: float) -> None:
        self._require(Phase.FRAMING)
        self.transform.set_scale(scale)

    def rotate_left(self) -> None:
        self._require(Phase.FRAMING)
        self.transform.rotate_by(-ROTATION_STEP_DEGREES)

    def rotate_right(self) -> None:
        self._require(Phase.FRAMING)
        self.transform.rotate_by(ROTATION_STEP_DEGREES)

    def begin_pan(self, x: float, y: float) -> None:
        self._require(Phase.FRAMING)
        tx, ty = self.transform.translation
        self._drag_origin = (x - tx, y - ty)

    def drag_to(self, x: float, y: float) -> None:
        if self._drag_origin is None or self._phase is not Phase.FRAMING:
            return
        self.transform.pan_to(x - self._drag_origin[0], y - self._drag_origin[1])

    def end_pan(self) -> None:
        self._drag_origin = None

    def commit(self) -> PixelBuffer:
        """Freeze the framing into the baseline and switch to masking."""
        self._require(Phase.FRAMING)
        checkerboard = self.checkerboard if self.commit_checkerboard else None
        baseline = commit(self._source, self.transform, self.canvas_size, checkerboard=checkerboard)
        self._history = HistoryStack(baseline)
        self._engine = MaskEngine(self._history, **self._engine_defaults)
        self._drag_origin = None
        self._phase = Phase.MASKING
        return self._history.baseline

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------
    def result(self) -> PixelBuffer:
        """Current exportable buffer (history top)."""
        if self._history is None:
            raise NothingToExport("Transform was never committed; nothing to export")
        return self._history.top()

    def cancel(self) -> None:
        """Drop all editing state; the caller's source is left untouched."""
        if self._engine is not None:
            self._engine.cancel_stroke()
        self._engine = None
        self._history = None
        self._drag_origin = None
        self.transform.reset()
        self._phase = Phase.CLOSED
        logger.debug("Editing session cancelled")

    def _require(self, phase: Phase) -> None:
        if self._phase is not phase:
            raise SessionStateError(
                f"Operation requires the {phase.value} phase (currently {self._phase.value})"
            )
