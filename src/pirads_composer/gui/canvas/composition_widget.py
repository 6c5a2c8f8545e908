"""Interactive widget hosting the composition canvas."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from PySide6.QtCore import QPointF, QRectF, QSize, Qt, Signal
from PySide6.QtGui import QCursor, QMouseEvent, QPainter, QPaintEvent
from PySide6.QtWidgets import QSizePolicy, QWidget

from ...core.canvas import CompositionCanvas, InteractionMode
from ...render.scene_painter import ScenePainter

logger = logging.getLogger(__name__)

_CURSOR_SHAPES: Dict[str, Qt.CursorShape] = {
    "nwse-resize": Qt.CursorShape.SizeFDiagCursor,
    "nesw-resize": Qt.CursorShape.SizeBDiagCursor,
    "ns-resize": Qt.CursorShape.SizeVerCursor,
    "ew-resize": Qt.CursorShape.SizeHorCursor,
    "nw-resize": Qt.CursorShape.SizeFDiagCursor,
    "se-resize": Qt.CursorShape.SizeFDiagCursor,
    "ne-resize": Qt.CursorShape.SizeBDiagCursor,
    "sw-resize": Qt.CursorShape.SizeBDiagCursor,
    "n-resize": Qt.CursorShape.SizeVerCursor,
    "s-resize": Qt.CursorShape.SizeVerCursor,
    "e-resize": Qt.CursorShape.SizeHorCursor,
    "w-resize": Qt.CursorShape.SizeHorCursor,
    "move": Qt.CursorShape.SizeAllCursor,
    "default": Qt.CursorShape.ArrowCursor,
}


def cursor_shape(name: str) -> Qt.CursorShape:
    return _CURSOR_SHAPES.get(name, Qt.CursorShape.ArrowCursor)


class CompositionCanvasWidget(QWidget):
    """Paints a :class:`CompositionCanvas` scaled to fit and forwards pointer events.

    Model changes request a repaint through ``update()``, which Qt coalesces
    into at most one paint per frame.
    """

    selection_changed = Signal(str)  # element id, empty when cleared
    viewport_changed = Signal(int, int)

    def __init__(self, canvas: CompositionCanvas, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._canvas = canvas
        self._painter = ScenePainter()
        self._show_grid = True
        self._last_viewport = (canvas.viewport.width, canvas.viewport.height)
        self._last_selection = ""
        self._gesture_transform: Optional[Tuple[float, float, float]] = None
        canvas.on_redraw = self.schedule_redraw
        self.setMouseTracking(True)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setMinimumSize(320, 200)

    @property
    def canvas(self) -> CompositionCanvas:
        return self._canvas

    def set_canvas(self, canvas: CompositionCanvas) -> None:
        self._canvas.on_redraw = None
        self._canvas = canvas
        canvas.on_redraw = self.schedule_redraw
        self.schedule_redraw()

    def set_grid_visible(self, visible: bool) -> None:
        self._show_grid = visible
        self.update()

    def sizeHint(self) -> QSize:  # noqa: N802
        return QSize(self._canvas.viewport.width, self._canvas.viewport.height)

    # ------------------------------------------------------------------
    # Coordinate mapping
    # ------------------------------------------------------------------
    def _transform(self) -> Tuple[float, float, float]:
        """Return (scale, offset_x, offset_y) fitting the viewport into the widget."""
        viewport = self._canvas.viewport
        if viewport.width <= 0 or viewport.height <= 0:
            return 1.0, 0.0, 0.0
        scale = min(self.width() / viewport.width, self.height() / viewport.height, 1.0)
        offset_x = (self.width() - viewport.width * scale) / 2.0
        offset_y = (self.height() - viewport.height * scale) / 2.0
        return scale, offset_x, offset_y

    def map_to_canvas(self, pos: QPointF) -> Tuple[float, float]:
        # Held fixed during a gesture; the viewport may change size under the pointer
        scale, offset_x, offset_y = self._gesture_transform or self._transform()
        return (pos.x() - offset_x) / scale, (pos.y() - offset_y) / scale

    # ------------------------------------------------------------------
    # Redraw
    # ------------------------------------------------------------------
    def schedule_redraw(self) -> None:
        viewport = (self._canvas.viewport.width, self._canvas.viewport.height)
        if viewport != self._last_viewport:
            self._last_viewport = viewport
            self.updateGeometry()
            self.viewport_changed.emit(*viewport)
        selected = self._canvas.selected
        selection = selected.id if selected is not None else ""
        if selection != self._last_selection:
            self._last_selection = selection
            self.selection_changed.emit(selection)
        self.update()

    def paintEvent(self, event: QPaintEvent) -> None:  # noqa: N802
        painter = QPainter(self)
        try:
            painter.fillRect(self.rect(), self.palette().window())
            scale, offset_x, offset_y = self._transform()
            painter.translate(offset_x, offset_y)
            painter.scale(scale, scale)
            viewport = self._canvas.viewport
            painter.setClipRect(QRectF(0, 0, viewport.width, viewport.height))
            self._painter.paint_live(painter, self._canvas, show_grid=self._show_grid)
        finally:
            painter.end()

    # ------------------------------------------------------------------
    # Pointer events
    # ------------------------------------------------------------------
    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return
        x, y = self.map_to_canvas(event.position())
        mode = self._canvas.on_pointer_down(x, y)
        if mode is not InteractionMode.IDLE:
            self._gesture_transform = self._transform()
            self.setCursor(QCursor(cursor_shape(self._canvas.hover_cursor(x, y))))
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        x, y = self.map_to_canvas(event.position())
        if self._canvas.interaction.active:
            self._canvas.on_pointer_move(x, y)
        else:
            self.setCursor(QCursor(cursor_shape(self._canvas.hover_cursor(x, y))))
        event.accept()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if event.button() != Qt.MouseButton.LeftButton:
            super().mouseReleaseEvent(event)
            return
        x, y = self.map_to_canvas(event.position())
        self._canvas.on_pointer_up(x, y)
        self._gesture_transform = None
        self.setCursor(QCursor(cursor_shape(self._canvas.hover_cursor(x, y))))
        event.accept()

    def leaveEvent(self, event) -> None:  # noqa: N802
        self.unsetCursor()
        super().leaveEvent(event)
