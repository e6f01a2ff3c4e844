"""Click-to-pin view of the processed specimen image."""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QPointF, QRectF, Qt, Signal
from PySide6.QtGui import QColor, QMouseEvent, QPainter, QPaintEvent, QPen, QPixmap
from PySide6.QtWidgets import QSizePolicy, QWidget

from ...core.pin import (
    DEFAULT_MARKER_SIZE,
    ImageBounds,
    PinOverlay,
    PinPosition,
    marker_geometry,
    place,
    shadow_position,
    to_display_coordinates,
)

logger = logging.getLogger(__name__)

SHADOW_SIZE = 6.0


class PinningWidget(QWidget):
    """
    Shows an image scaled to fit and lets the user drop a single pin on it.

    The pin is stored as percentages of the displayed image box, so resizing
    the widget moves the marker with the image.
    """

    pin_placed = Signal(object)  # Emits PinPosition

    def __init__(
        self,
        overlay: PinOverlay,
        pixmap: Optional[QPixmap] = None,
        read_only: bool = False,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._overlay = overlay
        self._pixmap = pixmap
        self._read_only = read_only
        self._hover: Optional[PinPosition] = None
        self.setMouseTracking(True)
        self.setMinimumSize(250, 250)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        if not read_only:
            self.setCursor(Qt.CursorShape.CrossCursor)

    def set_pixmap(self, pixmap: QPixmap) -> None:
        self._pixmap = pixmap
        self.update()

    def image_bounds(self) -> Optional[ImageBounds]:
        """Box the pixmap currently occupies, centred and aspect-preserving."""
        if self._pixmap is None or self._pixmap.isNull():
            return None
        scale = min(self.width() / self._pixmap.width(), self.height() / self._pixmap.height())
        width = self._pixmap.width() * scale
        height = self._pixmap.height() * scale
        if width <= 0 or height <= 0:
            return None
        return ImageBounds((self.width() - width) / 2.0, (self.height() - height) / 2.0, width, height)

    # ------------------------------------------------------------- Events
    def mousePressEvent(self, event: QMouseEvent) -> None:
        bounds = self.image_bounds()
        if self._read_only or bounds is None or event.button() != Qt.MouseButton.LeftButton:
            return super().mousePressEvent(event)
        pointer = (event.position().x(), event.position().y())
        if not bounds.contains(pointer):
            return
        pin = self._overlay.place(pointer, bounds)
        logger.debug("Pin placed at (%.2f%%, %.2f%%)", pin.x, pin.y)
        self.pin_placed.emit(pin)
        self.update()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        bounds = self.image_bounds()
        if self._read_only or bounds is None:
            return
        pointer = (event.position().x(), event.position().y())
        self._hover = place(pointer, bounds) if bounds.contains(pointer) else None
        self.update()

    def leaveEvent(self, event) -> None:
        self._hover = None
        self.update()
        super().leaveEvent(event)

    def paintEvent(self, event: QPaintEvent) -> None:
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), QColor("white"))
        bounds = self.image_bounds()
        if bounds is None:
            painter.end()
            return
        target = QRectF(bounds.left, bounds.top, bounds.width, bounds.height)
        painter.drawPixmap(target, self._pixmap, QRectF(self._pixmap.rect()))

        pin = self._overlay.pin
        if pin is not None:
            sx, sy = to_display_coordinates(shadow_position(pin), bounds)
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(QColor(0, 0, 0, 50))
            painter.drawEllipse(QPointF(sx, sy), SHADOW_SIZE / 2.0, SHADOW_SIZE / 2.0)
            self._draw_marker(painter, pin, bounds, QColor(23, 23, 23), QColor(115, 115, 115))
        elif self._hover is not None and not self._read_only:
            self._draw_marker(painter, self._hover, bounds, QColor(23, 23, 23, 100), QColor("white"))
        painter.end()

    @staticmethod
    def _draw_marker(
        painter: QPainter,
        pin: PinPosition,
        bounds: ImageBounds,
        fill: QColor,
        outline: QColor,
    ) -> None:
        left, top, width, height = marker_geometry(pin, bounds, DEFAULT_MARKER_SIZE)
        pen = QPen(outline)
        pen.setWidthF(2.0)
        painter.setPen(pen)
        painter.setBrush(fill)
        painter.drawEllipse(QRectF(left, top, width, height))
