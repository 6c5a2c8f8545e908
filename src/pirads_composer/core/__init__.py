"""Toolkit-independent scene model for report image composition."""

from .annotation import AnnotationLayer, LegendItem, LegendLayout, LesionEntry, Tool
from .canvas import CompositionCanvas, InteractionMode, InteractionState
from .element import ElementRole, PlacedElement
from .geometry import Point, Rect, Stroke, parse_hex_color
from .raster import RasterImage
from .viewport import CanvasPolicy, Viewport

__all__ = [
    "AnnotationLayer",
    "CanvasPolicy",
    "CompositionCanvas",
    "ElementRole",
    "InteractionMode",
    "InteractionState",
    "LegendItem",
    "LegendLayout",
    "LesionEntry",
    "PlacedElement",
    "Point",
    "RasterImage",
    "Rect",
    "Stroke",
    "Tool",
    "Viewport",
    "parse_hex_color",
]
