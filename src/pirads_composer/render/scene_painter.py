"""QPainter rendering of the composition canvas, live and for export."""

from __future__ import annotations

import logging
from typing import Dict

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QBrush, QColor, QFont, QImage, QPainter, QPainterPath, QPen

from ..core.canvas import CompositionCanvas
from ..core.element import ElementRole, PlacedElement
from ..core.raster import RasterImage
from .qt_image import raster_to_qimage

logger = logging.getLogger(__name__)

THEME_BLUE = QColor("#51abe4")
DIAGRAM_BORDER = QColor("#4ecdc4")
ADDITIONAL_BORDER = QColor("#ff6b6b")
DEFAULT_BORDER = QColor("#cccccc")
IDLE_HANDLE = QColor("#999999")
DIVIDER = QColor("#e0e0e0")
GRID = QColor("#f0f0f0")
GRID_SPACING = 20

PLACEHOLDER_FILL = QColor("#f8f9fa")
PLACEHOLDER_BORDER = QColor("#dee2e6")
PLACEHOLDER_TEXT = QColor("#6c757d")

EXPORT_BORDER_RADIUS = 32.0
EXPORT_BORDER_WIDTH = 3.0


def border_color(element: PlacedElement) -> QColor:
    if element.selected:
        return THEME_BLUE
    if element.role is ElementRole.DIAGRAM:
        return DIAGRAM_BORDER
    if element.role is ElementRole.ADDITIONAL:
        return ADDITIONAL_BORDER
    return DEFAULT_BORDER


def placeholder_caption(element: PlacedElement, index: int) -> str:
    if element.role is ElementRole.DIAGRAM:
        return "PI-RADS Painter"
    if element.role is ElementRole.ADDITIONAL:
        return f"Screenshot {index + 1}"
    return "Screenshot einfügen"


def draw_rounded_border(painter: QPainter, width: float, height: float) -> None:
    """Stroke the decorative rounded frame drawn on exported compositions."""
    inset = EXPORT_BORDER_WIDTH / 2.0
    radius = EXPORT_BORDER_RADIUS
    path = QPainterPath()
    path.moveTo(radius, inset)
    path.lineTo(width - radius, inset)
    path.quadTo(width - inset, inset, width - inset, radius)
    path.lineTo(width - inset, height - radius)
    path.quadTo(width - inset, height - inset, width - radius, height - inset)
    path.lineTo(radius, height - inset)
    path.quadTo(inset, height - inset, inset, height - radius)
    path.lineTo(inset, radius)
    path.quadTo(inset, inset, radius, inset)

    painter.save()
    painter.setBrush(Qt.BrushStyle.NoBrush)
    painter.setPen(QPen(THEME_BLUE, EXPORT_BORDER_WIDTH))
    painter.drawPath(path)
    painter.restore()


class ScenePainter:
    """Paints a :class:`CompositionCanvas` onto a ``QPainter``.

    Decoded element images are converted to ``QImage`` once and cached by
    raster identity.
    """

    def __init__(self) -> None:
        self._image_cache: Dict[int, QImage] = {}

    def qimage_for(self, raster: RasterImage) -> QImage:
        key = raster.cache_key
        cached = self._image_cache.get(key)
        if cached is None:
            cached = raster_to_qimage(raster)
            self._image_cache[key] = cached
        return cached

    def prune_cache(self, canvas: CompositionCanvas) -> None:
        live = {element.image.cache_key for element in canvas if element.image is not None}
        for key in list(self._image_cache):
            if key not in live:
                del self._image_cache[key]

    # ------------------------------------------------------------------
    # Live view
    # ------------------------------------------------------------------
    def paint_live(self, painter: QPainter, canvas: CompositionCanvas, show_grid: bool = True) -> None:
        """Full editor redraw: background, grid, elements, handles, viewport handles."""
        width = canvas.viewport.width
        height = canvas.viewport.height
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
        painter.fillRect(QRectF(0, 0, width, height), QColor("#ffffff"))

        if show_grid:
            self._paint_grid(painter, width, height)

        if len(canvas) == 2:
            painter.setPen(QPen(DIVIDER, 2))
            painter.drawLine(QPointF(width / 2.0, 0), QPointF(width / 2.0, height))

        any_selected = canvas.selected is not None
        for index, element in enumerate(canvas):
            if element.image is not None:
                self._paint_image(painter, element, element.image)
            else:
                self._paint_placeholder(painter, element, placeholder_caption(element, index))
            self._paint_border(painter, element)
            if element.selected or not any_selected:
                self._paint_handles(painter, element)

        self._paint_viewport_handles(painter, canvas)
        self.prune_cache(canvas)

    def _paint_grid(self, painter: QPainter, width: int, height: int) -> None:
        painter.save()
        painter.setOpacity(0.5)
        painter.setPen(QPen(GRID, 0.5))
        for x in range(0, width + 1, GRID_SPACING):
            painter.drawLine(QPointF(x, 0), QPointF(x, height))
        for y in range(0, height + 1, GRID_SPACING):
            painter.drawLine(QPointF(0, y), QPointF(width, y))
        painter.restore()

    def _paint_image(self, painter: QPainter, element: PlacedElement, image: RasterImage) -> None:
        target = QRectF(element.x, element.y, element.width, element.height)
        painter.drawImage(target, self.qimage_for(image))

    def _paint_border(self, painter: QPainter, element: PlacedElement) -> None:
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.setPen(QPen(border_color(element), 3 if element.selected else 2))
        painter.drawRect(QRectF(element.x, element.y, element.width, element.height))

    def _paint_placeholder(self, painter: QPainter, element: PlacedElement, caption: str) -> None:
        rect = QRectF(element.x, element.y, element.width, element.height)
        painter.fillRect(rect, PLACEHOLDER_FILL)

        pen = QPen(PLACEHOLDER_BORDER, 3)
        # Qt dash lengths are in units of the pen width
        pen.setDashPattern([15 / 3.0, 10 / 3.0])
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(rect.adjusted(5, 5, -5, -5))

        font = QFont("Arial")
        font.setPixelSize(28)
        font.setBold(True)
        painter.setFont(font)
        painter.setPen(PLACEHOLDER_TEXT)
        painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, caption)

    def _paint_handles(self, painter: QPainter, element: PlacedElement) -> None:
        painter.setPen(QPen(QColor("#ffffff"), 2))
        painter.setBrush(QBrush(THEME_BLUE if element.selected else IDLE_HANDLE))
        for hotspot in element.handle_rects().values():
            painter.drawRect(QRectF(hotspot.x, hotspot.y, hotspot.width, hotspot.height))

    def _paint_viewport_handles(self, painter: QPainter, canvas: CompositionCanvas) -> None:
        painter.setPen(QPen(QColor("#ffffff"), 2))
        painter.setBrush(QBrush(THEME_BLUE))
        for hotspot in canvas.viewport_handle_rects().values():
            painter.drawEllipse(QRectF(hotspot.x, hotspot.y, hotspot.width, hotspot.height))

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def render_export(self, canvas: CompositionCanvas) -> QImage:
        """Flatten bound element images onto white at the viewport size.

        No grid, selection state, placeholders or handles are drawn.
        """
        width = canvas.viewport.width
        height = canvas.viewport.height
        image = QImage(width, height, QImage.Format.Format_ARGB32)
        image.fill(QColor("#ffffff"))

        painter = QPainter(image)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
            painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
            drawn = 0
            for element in canvas:
                if element.image is None:
                    continue
                self._paint_image(painter, element, element.image)
                drawn += 1
            draw_rounded_border(painter, width, height)
        finally:
            painter.end()

        logger.debug("Rendered %dx%d composition with %d image(s)", width, height, drawn)
        return image


