"""QPainter rendering of the lesion annotation layer and its legend."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QColor, QFont, QImage, QPainter, QPainterPath, QPen

from ..core.annotation import AnnotationLayer
from ..core.geometry import Color, Point, Stroke
from ..core.raster import RasterImage
from .qt_image import raster_to_qimage

logger = logging.getLogger(__name__)

BackgroundLoader = Callable[[str], RasterImage]


@dataclass(frozen=True)
class AnnotationTheme:
    """Colours of the drawing surface and legend strip."""

    background: str
    legend_background: str
    text: str
    outline: str = "#333333"
    caption: str = "#666666"


LIGHT_THEME = AnnotationTheme(background="#f8f8f8", legend_background="#FFFEFC", text="#000000")
DARK_THEME = AnnotationTheme(background="#1a1a1a", legend_background="#2a2a2a", text="#ffffff")


def _qcolor(color: Color) -> QColor:
    r, g, b, a = color
    return QColor(r, g, b, a)


def _stroke_pen(color: Color, width: float) -> QPen:
    pen = QPen(_qcolor(color), width)
    pen.setCapStyle(Qt.PenCapStyle.RoundCap)
    pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
    return pen


def paint_stroke(painter: QPainter, stroke: Stroke) -> None:
    points = stroke.points
    painter.setPen(_stroke_pen(stroke.color, stroke.width))
    painter.setBrush(Qt.BrushStyle.NoBrush)
    if len(points) == 1:
        painter.drawPoint(QPointF(points[0].x, points[0].y))
        return
    path = QPainterPath(QPointF(points[0].x, points[0].y))
    for point in points[1:]:
        path.lineTo(point.x, point.y)
    painter.drawPath(path)


def paint_live_segment(painter: QPainter, start: Point, end: Point, color: Color, width: float) -> None:
    """Draw one incremental pen segment without a full redraw."""
    painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
    painter.setPen(_stroke_pen(color, width))
    painter.drawLine(QPointF(start.x, start.y), QPointF(end.x, end.y))


def paint_default_diagram(painter: QPainter, width: int, height: int, theme: AnnotationTheme) -> None:
    """Outline ellipse and caption shown when no diagram image is available."""
    painter.setPen(QPen(QColor(theme.outline), 2))
    painter.setBrush(Qt.BrushStyle.NoBrush)
    painter.drawEllipse(QPointF(width / 2.0, height / 2.0 - 40), 200, 150)

    font = QFont("Arial")
    font.setPixelSize(16)
    painter.setFont(font)
    painter.setPen(QColor(theme.caption))
    caption_rect = QRectF(0, height / 2.0 + 200 - 16, width, 20)
    painter.drawText(caption_rect, Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignBottom, "Prostate Diagram")


def paint_legend(
    painter: QPainter,
    layer: AnnotationLayer,
    theme: AnnotationTheme,
    background: Optional[RasterImage] = None,
) -> None:
    width, _ = layer.surface_size(background)
    layout = layer.legend_layout(background)
    painter.fillRect(QRectF(0, layout.strip_top, width, layout.strip_height), QColor(theme.legend_background))

    title_font = QFont("Arial")
    title_font.setPixelSize(16)
    title_font.setBold(True)
    painter.setFont(title_font)
    painter.setPen(QColor(theme.text))
    painter.drawText(
        QRectF(0, layout.title_y - 16, width, 20),
        Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignBottom,
        layer.legend_title,
    )

    label_font = QFont("Arial")
    label_font.setPixelSize(14)
    for item in layout.items:
        painter.fillRect(QRectF(item.x, item.y - 12, 15, 15), _qcolor(item.entry.color))
        painter.setFont(label_font)
        painter.setPen(QColor(theme.text))
        painter.drawText(QPointF(item.x + 25, item.y), layer.label_for(item.entry))


class AnnotationPainter:
    """Paints an :class:`AnnotationLayer` surface."""

    def __init__(self, theme: AnnotationTheme = LIGHT_THEME) -> None:
        self.theme = theme
        self._background_key: Optional[int] = None
        self._background: Optional[QImage] = None

    def _background_image(self, raster: RasterImage) -> QImage:
        if self._background is None or self._background_key != raster.cache_key:
            self._background = raster_to_qimage(raster)
            self._background_key = raster.cache_key
        return self._background

    def paint(self, painter: QPainter, layer: AnnotationLayer, background: Optional[RasterImage] = None) -> None:
        """Full redraw: surface fill, diagram, committed strokes in order, legend."""
        raster = background if background is not None else layer.background
        width, height = layer.surface_size(raster)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        painter.fillRect(QRectF(0, 0, width, height), QColor(self.theme.background))

        if raster is not None:
            painter.drawImage(QPointF(0, 0), self._background_image(raster))
        else:
            paint_default_diagram(painter, width, height, self.theme)

        for stroke in layer.strokes:
            paint_stroke(painter, stroke)

        paint_legend(painter, layer, self.theme, raster)

    def render(self, layer: AnnotationLayer, background: Optional[RasterImage] = None) -> QImage:
        width, height = layer.surface_size(background)
        image = QImage(width, height, QImage.Format.Format_ARGB32)
        image.fill(QColor(self.theme.background))
        painter = QPainter(image)
        try:
            self.paint(painter, layer, background)
        finally:
            painter.end()
        return image


def render_annotation_export(
    layer: AnnotationLayer,
    loader: Optional[BackgroundLoader] = None,
) -> QImage:
    """
    Rebuild the annotation surface offscreen for export.

    The diagram is reloaded from ``layer.background_source`` through ``loader``
    rather than reusing the live surface. The export always uses the light
    theme on a white base.
    """
    background = layer.background
    if loader is not None and layer.background_source:
        background = loader(layer.background_source)
        logger.debug("Reloaded diagram %s for export", layer.background_source)

    width, height = layer.surface_size(background)
    image = QImage(width, height, QImage.Format.Format_ARGB32)
    image.fill(QColor("#ffffff"))
    painter = QPainter(image)
    try:
        AnnotationPainter(LIGHT_THEME).paint(painter, layer, background)
    finally:
        painter.end()
    return image
