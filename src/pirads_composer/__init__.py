"""
Report image composer for prostate MRI findings.

Screenshots and an annotated zone diagram are arranged on a resizable
canvas and exported as a single PNG. The scene model lives in ``core`` and
has no toolkit dependency; rendering and the editor use PySide6.
"""

from .config import LayoutConfig, build_annotation_layer, build_canvas, default_layout, load_layout_config
from .assets import AssetImageSource, ImageDecodeError, decode_image_bytes, load_image_source
from .core import AnnotationLayer, CanvasPolicy, CompositionCanvas, ElementRole, PlacedElement, RasterImage
from .settings import asset_root, output_root, resolve_asset_path, reset_settings_cache
from .exporters import (
    ClipboardSink,
    ExportError,
    ExportOutcome,
    ExportPayload,
    FileSink,
    deliver_with_fallback,
    export_annotation_png,
    export_composition_png,
    timestamped_filename,
)

__all__ = [
    "LayoutConfig",
    "load_layout_config",
    "default_layout",
    "build_canvas",
    "build_annotation_layer",
    "AssetImageSource",
    "ImageDecodeError",
    "decode_image_bytes",
    "load_image_source",
    "AnnotationLayer",
    "CanvasPolicy",
    "CompositionCanvas",
    "ElementRole",
    "PlacedElement",
    "RasterImage",
    "asset_root",
    "output_root",
    "resolve_asset_path",
    "reset_settings_cache",
    "ClipboardSink",
    "ExportError",
    "ExportOutcome",
    "ExportPayload",
    "FileSink",
    "deliver_with_fallback",
    "export_annotation_png",
    "export_composition_png",
    "timestamped_filename",
]
