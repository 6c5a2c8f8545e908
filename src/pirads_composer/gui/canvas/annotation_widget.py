"""Drawing surface for the lesion annotation layer."""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QPointF, Qt
from PySide6.QtGui import QColor, QCursor, QImage, QMouseEvent, QPainter, QPaintEvent
from PySide6.QtWidgets import QWidget

from ...core.annotation import AnnotationLayer, Tool
from ...core.geometry import Color, Point
from ...render.annotation_painter import LIGHT_THEME, AnnotationPainter, AnnotationTheme, paint_live_segment

logger = logging.getLogger(__name__)


class AnnotationCanvasWidget(QWidget):
    """Fixed-size widget painting an :class:`AnnotationLayer` through a backing image.

    Live pen segments are drawn straight into the backing image; every other
    change repaints it completely.
    """

    def __init__(
        self,
        layer: AnnotationLayer,
        theme: AnnotationTheme = LIGHT_THEME,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._layer = layer
        self._painter = AnnotationPainter(theme)
        self._buffer: Optional[QImage] = None
        layer.on_redraw = self.redraw
        layer.on_segment = self._draw_segment
        self.setMouseTracking(True)
        self.setCursor(QCursor(Qt.CursorShape.CrossCursor))
        self.redraw()

    @property
    def layer(self) -> AnnotationLayer:
        return self._layer

    def set_theme(self, theme: AnnotationTheme) -> None:
        self._painter = AnnotationPainter(theme)
        self.redraw()

    def set_tool(self, tool: Tool) -> None:
        self._layer.set_tool(tool)
        shape = Qt.CursorShape.CrossCursor if tool is Tool.PEN else Qt.CursorShape.PointingHandCursor
        self.setCursor(QCursor(shape))

    def redraw(self) -> None:
        width, height = self._layer.surface_size()
        if self._buffer is None or self._buffer.width() != width or self._buffer.height() != height:
            self._buffer = QImage(width, height, QImage.Format.Format_ARGB32_Premultiplied)
            self.setFixedSize(width, height)
        self._buffer.fill(QColor(self._painter.theme.background))
        painter = QPainter(self._buffer)
        try:
            self._painter.paint(painter, self._layer)
        finally:
            painter.end()
        self.update()

    def _draw_segment(self, start: Point, end: Point, color: Color, width: float) -> None:
        if self._buffer is None:
            return
        painter = QPainter(self._buffer)
        try:
            paint_live_segment(painter, start, end, color, width)
        finally:
            painter.end()
        self.update()

    def paintEvent(self, event: QPaintEvent) -> None:  # noqa: N802
        if self._buffer is None:
            return
        painter = QPainter(self)
        try:
            painter.drawImage(QPointF(0, 0), self._buffer)
        finally:
            painter.end()

    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return
        pos = event.position()
        self._layer.on_pointer_down(pos.x(), pos.y())
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        pos = event.position()
        self._layer.on_pointer_move(pos.x(), pos.y())
        event.accept()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if event.button() != Qt.MouseButton.LeftButton:
            super().mouseReleaseEvent(event)
            return
        pos = event.position()
        stroke = self._layer.on_pointer_up(pos.x(), pos.y())
        if stroke is not None:
            logger.debug("Committed stroke with %d point(s)", len(stroke.points))
        event.accept()
