"""Dialog hosting the frame / clean up / pin workflow for one specimen photo."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pyqtgraph as pg
from PySide6.QtCore import QEvent, Qt, Signal
from PySide6.QtGui import QKeySequence, QMouseEvent, QPen, QShortcut
from PySide6.QtWidgets import (
    QButtonGroup,
    QDialog,
    QGraphicsEllipseItem,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPushButton,
    QSizePolicy,
    QSlider,
    QStackedWidget,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from ...core.mask import MAX_BRUSH_SIZE, MAX_TOLERANCE, MIN_BRUSH_SIZE, MIN_TOLERANCE
from ...core.session import EditorSession, Phase
from ...core.transform import MAX_SCALE, MIN_SCALE, SCALE_STEP
from ..canvas.pixmap_utils import buffer_to_pixmap, composite_on_checkerboard
from .pinning_widget import PinningWidget

logger = logging.getLogger(__name__)

SCALE_TICKS = int(round(1.0 / SCALE_STEP))


class SpecimenEditorDialog(QDialog):
    """Walks the user from framing a photo to a pinned, background-free image."""

    image_saved = Signal(object)  # Emits the exported PixelBuffer

    def __init__(self, session: EditorSession, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.session = session
        self._active_tool = "magic"
        self._is_panning = False
        self._cursor_view_pos: Optional[tuple[float, float]] = None

        self.setWindowTitle("Specimen Editor")
        self.resize(900, 760)

        self._setup_ui()
        self._connect_signals()
        self._sync_phase()
        self._update_canvas()

    # --------------------------------------------------------------------- UI
    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(10, 10, 10, 10)
        layout.setSpacing(6)

        layout.addWidget(self._build_phase_bar())

        self.pages = QStackedWidget(self)

        self.canvas_widget = pg.GraphicsLayoutWidget()
        self.canvas_plot = self.canvas_widget.addPlot()
        self.canvas_plot.hideButtons()
        self.canvas_plot.setMenuEnabled(False)
        self.canvas_plot.hideAxis("left")
        self.canvas_plot.hideAxis("bottom")
        self.canvas_plot.setAspectLocked(True)
        self.canvas_plot.invertY(True)
        self.view_box = self.canvas_plot.getViewBox()
        self.view_box.setMouseEnabled(x=False, y=False)

        self.image_item = pg.ImageItem(axisOrder="row-major")
        self.canvas_plot.addItem(self.image_item)

        self.cursor_item = QGraphicsEllipseItem()
        pen = QPen(Qt.white)
        pen.setWidthF(1.25)
        pen.setCosmetic(True)
        self.cursor_item.setPen(pen)
        self.cursor_item.setBrush(Qt.BrushStyle.NoBrush)
        self.cursor_item.setZValue(10)
        self.cursor_item.setVisible(False)
        self.view_box.addItem(self.cursor_item)

        self.canvas_viewport = self.canvas_widget.viewport()
        self.canvas_viewport.setMouseTracking(True)
        self.canvas_viewport.installEventFilter(self)
        self.pages.addWidget(self.canvas_widget)

        self.pinning_widget = PinningWidget(self.session.pin_overlay, parent=self.pages)
        self.pages.addWidget(self.pinning_widget)
        layout.addWidget(self.pages, 1)

        self.frame_controls = self._build_frame_controls()
        self.cleanup_controls = self._build_cleanup_controls()
        layout.addWidget(self.frame_controls)
        layout.addWidget(self.cleanup_controls)

        self.status_label = QLabel("Drag to position, zoom and rotate, then continue to clean up.")
        self.status_label.setObjectName("specimenEditorStatus")
        layout.addWidget(self.status_label)

    def _build_phase_bar(self) -> QWidget:
        bar = QWidget(self)
        bar_layout = QHBoxLayout(bar)
        bar_layout.setContentsMargins(0, 0, 0, 0)
        bar_layout.setSpacing(8)

        self.frame_tab = self._make_tool_button("Frame", "Position, zoom and rotate the photo", bar)
        self.cleanup_tab = self._make_tool_button("Clean Up", "Remove the background", bar)
        self.pin_tab = self._make_tool_button("Pin", "Place the pin on the specimen", bar)
        self.phase_group = QButtonGroup(bar)
        self.phase_group.setExclusive(True)
        for button in (self.frame_tab, self.cleanup_tab, self.pin_tab):
            self.phase_group.addButton(button)
            bar_layout.addWidget(button)
        self.frame_tab.setChecked(True)

        bar_layout.addStretch(1)
        self.cancel_button = QPushButton("Cancel", bar)
        self.save_button = QPushButton("Save", bar)
        self.save_button.setDefault(True)
        bar_layout.addWidget(self.cancel_button)
        bar_layout.addWidget(self.save_button)
        return bar

    def _build_frame_controls(self) -> QWidget:
        panel = QWidget(self)
        panel_layout = QHBoxLayout(panel)
        panel_layout.setContentsMargins(0, 0, 0, 0)

        panel_layout.addWidget(QLabel("Zoom:", panel))
        self.scale_slider = QSlider(Qt.Orientation.Horizontal, panel)
        self.scale_slider.setMinimum(int(round(MIN_SCALE * SCALE_TICKS)))
        self.scale_slider.setMaximum(int(round(MAX_SCALE * SCALE_TICKS)))
        self.scale_slider.setValue(int(round(self.session.transform.scale * SCALE_TICKS)))
        panel_layout.addWidget(self.scale_slider, 1)

        panel_layout.addWidget(QLabel("Rotate:", panel))
        self.rotate_left_button = QPushButton("-90°", panel)
        self.rotate_right_button = QPushButton("+90°", panel)
        panel_layout.addWidget(self.rotate_left_button)
        panel_layout.addWidget(self.rotate_right_button)

        panel_layout.addStretch(1)
        self.commit_button = QPushButton("Next: Clean Up", panel)
        panel_layout.addWidget(self.commit_button)
        return panel

    def _build_cleanup_controls(self) -> QWidget:
        panel = QWidget(self)
        panel_layout = QHBoxLayout(panel)
        panel_layout.setContentsMargins(0, 0, 0, 0)
        panel_layout.setSpacing(8)

        self.magic_button = self._make_tool_button("Auto Remove", "Click the background to remove that colour", panel)
        self.brush_button = self._make_tool_button("Highlight Remove", "Paint over areas to erase them", panel)
        self.tool_group = QButtonGroup(panel)
        self.tool_group.setExclusive(True)
        self.tool_group.addButton(self.magic_button)
        self.tool_group.addButton(self.brush_button)
        self.magic_button.setChecked(True)
        panel_layout.addWidget(self.magic_button)

        self.target_swatch = QLabel(panel)
        self.target_swatch.setFixedSize(16, 16)
        self.target_swatch.setToolTip("Target colour (click image to pick)")
        panel_layout.addWidget(self.target_swatch)

        self.tolerance_slider = QSlider(Qt.Orientation.Horizontal, panel)
        self.tolerance_slider.setMinimum(int(MIN_TOLERANCE))
        self.tolerance_slider.setMaximum(int(MAX_TOLERANCE))
        self.tolerance_slider.setToolTip("Tolerance")
        panel_layout.addWidget(self.tolerance_slider, 1)

        panel_layout.addWidget(self.brush_button)
        self.size_slider = QSlider(Qt.Orientation.Horizontal, panel)
        self.size_slider.setMinimum(MIN_BRUSH_SIZE)
        self.size_slider.setMaximum(MAX_BRUSH_SIZE)
        self.size_slider.setToolTip("Brush size")
        panel_layout.addWidget(self.size_slider, 1)

        self.reset_button = QPushButton("Reset", panel)
        self.reset_button.setToolTip("Reset all clean up")
        self.undo_button = QPushButton("Undo", panel)
        self.undo_button.setToolTip("Undo last action (Ctrl/Cmd+Z)")
        self.undo_button.setEnabled(False)
        self.pin_button = QPushButton("Next: Pin", panel)
        panel_layout.addWidget(self.reset_button)
        panel_layout.addWidget(self.undo_button)
        panel_layout.addWidget(self.pin_button)
        return panel

    def _make_tool_button(self, text: str, tooltip: str, parent: QWidget) -> QToolButton:
        button = QToolButton(parent)
        button.setText(text)
        button.setToolTip(tooltip)
        button.setCheckable(True)
        button.setMinimumHeight(28)
        button.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Fixed)
        return button

    # ---------------------------------------------------------------- Signals
    def _connect_signals(self) -> None:
        self.scale_slider.valueChanged.connect(self._on_scale_changed)
        self.rotate_left_button.clicked.connect(lambda: self._rotate(clockwise=False))
        self.rotate_right_button.clicked.connect(lambda: self._rotate(clockwise=True))
        self.commit_button.clicked.connect(self._commit_transform)
        self.cleanup_tab.clicked.connect(self._commit_transform)
        self.frame_tab.clicked.connect(self._sync_phase)
        self.pin_tab.clicked.connect(self._show_pinning)
        self.pin_button.clicked.connect(self._show_pinning)

        self.magic_button.toggled.connect(lambda checked: checked and self._set_active_tool("magic"))
        self.brush_button.toggled.connect(lambda checked: checked and self._set_active_tool("brush"))
        self.tolerance_slider.valueChanged.connect(self._on_tolerance_changed)
        self.tolerance_slider.sliderReleased.connect(self._on_tolerance_released)
        self.size_slider.valueChanged.connect(self._on_brush_size_changed)
        self.undo_button.clicked.connect(self._undo_action)
        self.reset_button.clicked.connect(self._reset_action)
        self.pinning_widget.pin_placed.connect(self._on_pin_placed)

        undo_shortcut = QShortcut(QKeySequence.StandardKey.Undo, self)
        undo_shortcut.activated.connect(self._undo_action)
        self._shortcuts = [undo_shortcut]

        self.save_button.clicked.connect(self.accept)
        self.cancel_button.clicked.connect(self.reject)

    # ------------------------------------------------------------- Framing
    def _on_scale_changed(self, value: int) -> None:
        if self.session.phase is not Phase.FRAMING:
            return
        self.session.set_scale(value / SCALE_TICKS)
        self._update_canvas()

    def _rotate(self, clockwise: bool) -> None:
        if self.session.phase is not Phase.FRAMING:
            return
        if clockwise:
            self.session.rotate_right()
        else:
            self.session.rotate_left()
        self._update_canvas()

    def _commit_transform(self) -> None:
        if self.session.phase is Phase.FRAMING:
            self.session.commit()
            engine = self.session.engine
            self.tolerance_slider.setValue(int(round(engine.tolerance)))
            self.size_slider.setValue(int(round(engine.brush_size)))
            self._set_status("Click the background to remove it, or paint with the brush.")
        self._sync_phase()
        self._update_canvas()

    # ------------------------------------------------------------- Clean up
    def _set_active_tool(self, tool: str) -> None:
        self._active_tool = tool
        if tool == "brush":
            self.canvas_viewport.setCursor(Qt.CursorShape.BlankCursor)
        else:
            self.cursor_item.setVisible(False)
            self.canvas_viewport.setCursor(Qt.CursorShape.CrossCursor)

    def _on_tolerance_changed(self, value: int) -> None:
        if self.session.phase is not Phase.MASKING:
            return
        engine = self.session.engine
        if self.tolerance_slider.isSliderDown() and engine.has_picked_target:
            engine.preview_magic_wand(value)
            self._update_canvas()
        else:
            engine.tolerance = value

    def _on_tolerance_released(self) -> None:
        if self.session.phase is not Phase.MASKING:
            return
        engine = self.session.engine
        if not engine.has_picked_target:
            engine.tolerance = self.tolerance_slider.value()
            return
        engine.commit_magic_wand(self.tolerance_slider.value())
        self._after_history_change()

    def _on_brush_size_changed(self, value: int) -> None:
        if self.session.phase is Phase.MASKING:
            self.session.engine.brush_size = value
        self._update_cursor_visual()

    def _undo_action(self) -> None:
        if self.session.phase is not Phase.MASKING:
            return
        if not self.session.engine.undo():
            self._set_status("Nothing to undo.")
        self._after_history_change()

    def _reset_action(self) -> None:
        if self.session.phase is not Phase.MASKING:
            return
        self.session.engine.reset()
        self._after_history_change()

    def _after_history_change(self) -> None:
        self._update_history_buttons()
        self._update_swatch()
        self._update_canvas()
        self.pinning_widget.set_pixmap(buffer_to_pixmap(self.session.result()))

    # ------------------------------------------------------------- Pinning
    def _show_pinning(self) -> None:
        if self.session.phase is Phase.FRAMING:
            self.session.commit()
        self.pinning_widget.set_pixmap(buffer_to_pixmap(self.session.result()))
        self.pin_tab.setChecked(True)
        self.pages.setCurrentWidget(self.pinning_widget)
        self.frame_controls.setVisible(False)
        self.cleanup_controls.setVisible(False)
        self._set_status("Click the thorax to pin the specimen.")

    def _on_pin_placed(self, pin) -> None:
        self._set_status(f"Pinned at ({pin.x:.1f}%, {pin.y:.1f}%).")

    # ------------------------------------------------------------- Canvas
    def _sync_phase(self) -> None:
        framing = self.session.phase is Phase.FRAMING
        self.pages.setCurrentWidget(self.canvas_widget)
        self.frame_controls.setVisible(framing)
        self.cleanup_controls.setVisible(not framing)
        self.frame_tab.setEnabled(framing)
        (self.frame_tab if framing else self.cleanup_tab).setChecked(True)
        self.canvas_viewport.setCursor(
            Qt.CursorShape.OpenHandCursor if framing else Qt.CursorShape.CrossCursor
        )
        self._update_history_buttons()
        self._update_swatch()

    def _update_canvas(self) -> None:
        if self.session.phase is Phase.FRAMING:
            pixels = self.session.preview().pixels
        elif self.session.phase is Phase.MASKING:
            pixels = composite_on_checkerboard(
                self.session.engine.current(), self.session.checkerboard
            )
        else:
            return
        self.image_item.setImage(pixels, autoLevels=False, levels=(0, 255))
        self.view_box.autoRange(padding=0.02)
        self._update_cursor_visual()

    def _update_history_buttons(self) -> None:
        can_undo = self.session.phase is Phase.MASKING and self.session.engine.can_undo
        self.undo_button.setEnabled(can_undo)

    def _update_swatch(self) -> None:
        if self.session.phase is not Phase.MASKING:
            return
        r, g, b = self.session.engine.target_color
        self.target_swatch.setStyleSheet(
            f"background-color: rgb({r},{g},{b}); border: 1px solid #d4d4d4; border-radius: 8px;"
        )

    def _set_status(self, message: str) -> None:
        self.status_label.setText(message)

    # -------------------------------------------------------------- Pointer
    def eventFilter(self, obj, event):  # noqa: D401
        """Route viewport mouse events to panning or the active clean up tool."""
        if obj is self.canvas_viewport and isinstance(event, QMouseEvent):
            if event.type() == QEvent.Type.MouseButtonPress:
                return self._handle_mouse_press(event)
            if event.type() == QEvent.Type.MouseMove:
                return self._handle_mouse_move(event)
            if event.type() == QEvent.Type.MouseButtonRelease:
                return self._handle_mouse_release(event)
        if obj is self.canvas_viewport and event.type() == QEvent.Type.Leave:
            self._cursor_view_pos = None
            self.cursor_item.setVisible(False)
            self._finish_interaction()
        return super().eventFilter(obj, event)

    def _handle_mouse_press(self, event: QMouseEvent) -> bool:
        if event.button() != Qt.MouseButton.LeftButton:
            return False
        x, y = self._map_to_canvas(event)
        if self.session.phase is Phase.FRAMING:
            self._is_panning = True
            self.session.begin_pan(x, y)
            self.canvas_viewport.setCursor(Qt.CursorShape.ClosedHandCursor)
            return True
        if self.session.phase is not Phase.MASKING:
            return False

        engine = self.session.engine
        if self._active_tool == "magic":
            result = engine.pick_and_apply(int(np.floor(x)), int(np.floor(y)), self.tolerance_slider.value())
            if result is None:
                self._set_status("Nothing to pick there; that area is already transparent.")
            self._after_history_change()
        else:
            engine.begin_stroke(x, y)
            self._update_canvas()
        return True

    def _handle_mouse_move(self, event: QMouseEvent) -> bool:
        x, y = self._map_to_canvas(event)
        self._cursor_view_pos = (x, y)
        if self.session.phase is Phase.FRAMING and self._is_panning:
            self.session.drag_to(x, y)
            self._update_canvas()
            return True
        if self.session.phase is Phase.MASKING and self.session.engine.is_stroking:
            self.session.engine.stroke_to(x, y)
            self._update_canvas()
            return True
        self._update_cursor_visual()
        return False

    def _handle_mouse_release(self, event: QMouseEvent) -> bool:
        if event.button() != Qt.MouseButton.LeftButton:
            return False
        return self._finish_interaction()

    def _finish_interaction(self) -> bool:
        if self._is_panning:
            self._is_panning = False
            self.session.end_pan()
            self.canvas_viewport.setCursor(Qt.CursorShape.OpenHandCursor)
            return True
        if self.session.phase is Phase.MASKING and self.session.engine.is_stroking:
            self.session.engine.end_stroke()
            self._after_history_change()
            return True
        return False

    def _map_to_canvas(self, event: QMouseEvent) -> tuple[float, float]:
        """Canvas pixel coordinates under the pointer (may lie outside the canvas)."""
        scene_pos = self.canvas_widget.mapToScene(event.position().toPoint())
        local_point = self.image_item.mapFromScene(scene_pos)
        return local_point.x(), local_point.y()

    def _update_cursor_visual(self) -> None:
        if (
            self._cursor_view_pos is None
            or self._active_tool != "brush"
            or self.session.phase is not Phase.MASKING
        ):
            self.cursor_item.setVisible(False)
            return
        radius = self.session.engine.brush_radius
        x, y = self._cursor_view_pos
        self.cursor_item.setRect(x - radius, y - radius, radius * 2, radius * 2)
        self.cursor_item.setVisible(True)

    # -------------------------------------------------------------- Closing
    def accept(self) -> None:  # noqa: D401
        """Commit if still framing, then close with the current result."""
        if self.session.phase is Phase.FRAMING:
            self.session.commit()
        if self.session.phase is Phase.MASKING and self.session.engine.is_stroking:
            self.session.engine.end_stroke()
        self.image_saved.emit(self.session.result())
        super().accept()

    def _confirm_discard(self) -> bool:
        if self.session.phase is not Phase.MASKING or not self.session.engine.can_undo:
            return True
        message = QMessageBox(self)
        message.setIcon(QMessageBox.Icon.Warning)
        message.setWindowTitle("Discard edits?")
        message.setText("You have unsaved edits. Discard changes?")
        message.setStandardButtons(
            QMessageBox.StandardButton.Discard | QMessageBox.StandardButton.Cancel
        )
        message.setDefaultButton(QMessageBox.StandardButton.Cancel)
        return message.exec() == QMessageBox.StandardButton.Discard

    def reject(self) -> None:  # noqa: D401
        """Cancel button, Escape and the titlebar close all end up here."""
        if self._confirm_discard():
            self.session.cancel()
            super().reject()
