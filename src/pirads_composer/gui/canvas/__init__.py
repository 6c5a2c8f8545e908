"""Canvas widgets for composing and annotating report images."""

from .annotation_widget import AnnotationCanvasWidget
from .composition_widget import CompositionCanvasWidget, cursor_shape

__all__ = ["AnnotationCanvasWidget", "CompositionCanvasWidget", "cursor_shape"]
