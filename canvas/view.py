"""
canvas/view.py

QGraphicsView hosting a PageScene: maps pointer events into document
space and feeds them to the ManipulationEngine.
"""

from __future__ import annotations

from PyQt6.QtCore import Qt, QPointF
from PyQt6.QtGui import QColor, QPainter, QTransform
from PyQt6.QtWidgets import QGraphicsView

from canvas.scene import PageScene
from interaction.engine import ManipulationEngine
from models import Mode, Point
from selection import STATE_MODE, STATE_ZOOM, SelectionController
from settings import get_settings
from utils import viewport_to_document


class PageView(QGraphicsView):
    """
    View with a fixed-scale document and pointer routing.

    Pointer handling:
    - Left press is hit-tested against the scene and opens an engine session
    - Moves and the release are forwarded while the button is held
    - Ctrl + wheel steps the zoom
    - Delete/Backspace deletes the selection; Escape returns to move mode
    """

    def __init__(self, scene: PageScene, engine: ManipulationEngine,
                 selection: SelectionController, parent=None):
        super().__init__(scene, parent)
        self.engine = engine
        self.selection = selection
        self._pressed = False
        self.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        self.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
        self.setDragMode(QGraphicsView.DragMode.NoDrag)
        self.setBackgroundBrush(QColor("#E5E7EB"))
        self.setAlignment(Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignTop)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMouseTracking(False)

        selection.add_listener(self._on_state_changed)
        self.apply_zoom(selection.state.zoom)
        self._update_cursor()

    # ------------------------------------------------------------------
    # Zoom
    # ------------------------------------------------------------------

    @property
    def zoom(self) -> float:
        return self.transform().m11()

    def apply_zoom(self, zoom: float) -> None:
        self.setTransform(QTransform.fromScale(zoom, zoom))

    def _on_state_changed(self, reason: str) -> None:
        if reason == STATE_ZOOM:
            self.apply_zoom(self.selection.state.zoom)
        elif reason == STATE_MODE:
            self._update_cursor()

    def _update_cursor(self) -> None:
        if self.selection.mode == Mode.ARROW:
            self.viewport().setCursor(Qt.CursorShape.CrossCursor)
        else:
            self.viewport().unsetCursor()

    def wheelEvent(self, event):
        """Ctrl + wheel zooms by the configured step; plain wheel scrolls."""
        if event.modifiers() & Qt.KeyboardModifier.ControlModifier:
            step = get_settings().settings.canvas.zoom.step
            delta = step if event.angleDelta().y() > 0 else -step
            self.selection.set_zoom(self.selection.state.zoom + delta)
            event.accept()
            return
        super().wheelEvent(event)

    # ------------------------------------------------------------------
    # Pointer routing
    # ------------------------------------------------------------------

    def document_point(self, viewport_pos: QPointF) -> Point:
        """Convert a viewport position to document space at the current zoom."""
        origin = self.viewportTransform().map(QPointF(0, 0))
        return viewport_to_document(viewport_pos.x(), viewport_pos.y(), origin.x(), origin.y(), self.zoom)

    def mousePressEvent(self, event):
        if event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return
        self.setFocus()
        point = self.document_point(event.position())
        target = self.scene().hit_test(point)
        self._pressed = True
        self.engine.pointer_down(point, target)
        event.accept()

    def mouseMoveEvent(self, event):
        if self._pressed:
            self.engine.pointer_move(self.document_point(event.position()))
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event):
        if self._pressed and event.button() == Qt.MouseButton.LeftButton:
            self._pressed = False
            self.engine.pointer_up(self.document_point(event.position()))
            event.accept()
            return
        super().mouseReleaseEvent(event)

    def keyPressEvent(self, event):
        """Handle key press events."""
        key = event.key()
        if key in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            self.selection.delete_selected()
            event.accept()
            return
        if key == Qt.Key.Key_Escape:
            self.selection.set_mode(Mode.MOVE)
            event.accept()
            return
        super().keyPressEvent(event)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def shutdown(self) -> None:
        """Release every pointer listener; the view accepts no further gestures."""
        self._pressed = False
        self.engine.shutdown()

    def closeEvent(self, event):
        self.shutdown()
        super().closeEvent(event)
