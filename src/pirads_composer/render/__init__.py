"""QPainter renderers for the composition canvas and the annotation layer."""

from .annotation_painter import (
    DARK_THEME,
    LIGHT_THEME,
    AnnotationPainter,
    AnnotationTheme,
    paint_live_segment,
    render_annotation_export,
)
from .qt_image import qimage_to_array, qimage_to_raster, raster_to_qimage
from .scene_painter import ScenePainter, draw_rounded_border

__all__ = [
    "AnnotationPainter",
    "AnnotationTheme",
    "DARK_THEME",
    "LIGHT_THEME",
    "ScenePainter",
    "draw_rounded_border",
    "paint_live_segment",
    "qimage_to_array",
    "qimage_to_raster",
    "raster_to_qimage",
    "render_annotation_export",
]
