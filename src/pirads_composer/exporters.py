"""Export of flattened compositions and annotation surfaces.

Rendered ``QImage`` surfaces are encoded to PNG with OpenCV and handed to
raster sinks: the system clipboard first, a timestamped file in the output
directory as fallback.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Sequence

import cv2
import numpy as np
from PySide6.QtGui import QGuiApplication, QImage

from .assets import ImageDecodeError
from .core.annotation import AnnotationLayer
from .core.canvas import CompositionCanvas
from .render.annotation_painter import BackgroundLoader, render_annotation_export
from .render.qt_image import qimage_to_array
from .render.scene_painter import ScenePainter
from .settings import output_root as default_output_root


logger = logging.getLogger(__name__)

EXPORT_PREFIX = "prostate-report"


class ExportError(RuntimeError):
    """Raised when a surface cannot be rasterised or encoded."""


class SinkError(RuntimeError):
    """Raised by a sink that refuses an exported image."""


@dataclass(frozen=True)
class ExportPayload:
    """An encoded export ready for delivery."""

    png: bytes
    image: QImage
    width: int
    height: int


@dataclass
class ExportOutcome:
    """Result of handing a payload to the configured sinks."""

    success: bool
    sink: Optional[str] = None
    location: Optional[str] = None
    message: str = ""
    errors: Dict[str, str] = field(default_factory=dict)


def encode_png(image: QImage) -> ExportPayload:
    """Encode ``image`` to PNG bytes, raising :class:`ExportError` on empty output."""
    if image.isNull() or image.width() == 0 or image.height() == 0:
        raise ExportError("Rendered surface is empty")
    rgba = qimage_to_array(image)
    bgra = cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA)
    ok, encoded = cv2.imencode(".png", bgra)
    if not ok or encoded is None or encoded.size == 0:
        raise ExportError("PNG encoding produced no data")
    return ExportPayload(png=np.asarray(encoded).tobytes(), image=image, width=image.width(), height=image.height())


def export_composition_png(canvas: CompositionCanvas, painter: Optional[ScenePainter] = None) -> ExportPayload:
    image = (painter or ScenePainter()).render_export(canvas)
    payload = encode_png(image)
    logger.info("Exported composition %dx%d (%d bytes)", payload.width, payload.height, len(payload.png))
    return payload


def export_annotation_png(layer: AnnotationLayer, loader: Optional[BackgroundLoader] = None) -> ExportPayload:
    """Render the annotation layer offscreen, reloading its diagram through ``loader``."""
    try:
        image = render_annotation_export(layer, loader)
    except ImageDecodeError as exc:
        raise ExportError(f"Cannot reload diagram for export: {exc}") from exc
    payload = encode_png(image)
    logger.info("Exported annotation %dx%d (%d bytes)", payload.width, payload.height, len(payload.png))
    return payload


def timestamped_filename(now: Optional[datetime] = None, prefix: str = EXPORT_PREFIX) -> str:
    stamp = (now or datetime.now()).strftime("%Y-%m-%dT%H-%M-%S")
    return f"{prefix}-{stamp}.png"


class RasterSink(ABC):
    """Destination for exported images."""

    name: str = "sink"

    @abstractmethod
    def deliver(self, payload: ExportPayload) -> str:
        """Hand over ``payload``; return a description of where it went.

        Raises:
            SinkError: The destination refused the image
        """


class ClipboardSink(RasterSink):
    name = "clipboard"

    def deliver(self, payload: ExportPayload) -> str:
        app = QGuiApplication.instance()
        if app is None:
            raise SinkError("No Qt application is running; clipboard unavailable")
        clipboard = QGuiApplication.clipboard()
        if clipboard is None:
            raise SinkError("Clipboard is not supported on this platform")
        clipboard.setImage(payload.image)
        if clipboard.image().isNull():
            raise SinkError("Clipboard rejected the image")
        return "clipboard"


class FileSink(RasterSink):
    """Writes PNG files into ``directory`` with timestamped names.

    Existing files get a numeric suffix unless ``overwrite`` is set.
    """

    name = "file"

    def __init__(
        self,
        directory: Optional[Path] = None,
        filename: Optional[str] = None,
        overwrite: bool = False,
    ) -> None:
        self.directory = directory
        self.filename = filename
        self.overwrite = overwrite

    def target_path(self) -> Path:
        directory = self.directory if self.directory is not None else default_output_root()
        name = self.filename or timestamped_filename()
        path = directory / name
        if self.overwrite:
            return path
        stem, suffix = path.stem, path.suffix
        counter = 1
        while path.exists():
            path = directory / f"{stem}_{counter}{suffix}"
            counter += 1
        return path

    def deliver(self, payload: ExportPayload) -> str:
        path = self.target_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload.png)
        except OSError as exc:
            raise SinkError(f"Cannot write {path}: {exc}") from exc
        return str(path)


def deliver_with_fallback(payload: ExportPayload, sinks: Sequence[RasterSink]) -> ExportOutcome:
    """
    Try ``sinks`` in order until one accepts the payload.

    Sink failures are logged and collected in the outcome; nothing is raised.
    """
    errors: Dict[str, str] = {}
    for sink in sinks:
        try:
            location = sink.deliver(payload)
        except SinkError as exc:
            logger.warning("%s export failed: %s", sink.name, exc)
            errors[sink.name] = str(exc)
            continue
        message = f"Image exported to {location}"
        if errors:
            message += f" ({', '.join(errors)} unavailable)"
        logger.info(message)
        return ExportOutcome(success=True, sink=sink.name, location=location, message=message, errors=errors)

    message = "Export failed: " + "; ".join(f"{name}: {error}" for name, error in errors.items())
    if not sinks:
        message = "Export failed: no export destination configured"
    return ExportOutcome(success=False, message=message, errors=errors)

