"""Controller layer for GUI business logic."""

from .export_controller import ExportController
from .image_controller import ImageController

__all__ = [
    "ExportController",
    "ImageController",
]
