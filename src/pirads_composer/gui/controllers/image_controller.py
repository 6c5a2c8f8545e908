"""Image loading controller: files and clipboard into canvas elements."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, Signal
from PySide6.QtGui import QGuiApplication
from PySide6.QtWidgets import QFileDialog, QWidget

from ...assets import ImageDecodeError
from ...core.canvas import CompositionCanvas
from ...core.element import PlacedElement
from ...core.raster import RasterImage
from ...protocols import ImageSourceProvider
from ...render.qt_image import qimage_to_raster
from ...settings import asset_root

logger = logging.getLogger(__name__)


class ImageController(QObject):
    """Decodes images and binds them to canvas elements.

    Decode failures never touch the target element; they are reported through
    ``load_failed``.
    """

    image_bound = Signal(str)  # element id
    load_failed = Signal(str, str)  # (element id, message)

    def __init__(
        self,
        canvas: CompositionCanvas,
        source: ImageSourceProvider,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._canvas = canvas
        self._source = source
        self._parent_widget = parent

    def set_canvas(self, canvas: CompositionCanvas) -> None:
        self._canvas = canvas

    def _target(self, element_id: Optional[str]) -> PlacedElement:
        if element_id is not None:
            return self._canvas.element(element_id)
        return self._canvas.free_screenshot_slot()

    def _bind(self, element_id: Optional[str], image: RasterImage) -> str:
        target = self._target(element_id)
        self._canvas.bind_image(target.id, image)
        self.image_bound.emit(target.id)
        return target.id

    def load_file(self, path: Path, element_id: Optional[str] = None) -> bool:
        try:
            image = self._source.load(path)
        except ImageDecodeError as exc:
            logger.warning("Image load failed for %s: %s", element_id or "new slot", exc)
            self.load_failed.emit(element_id or "", str(exc))
            return False
        self._bind(element_id, image)
        return True

    def load_bytes(self, data: bytes, element_id: Optional[str] = None, source: Optional[str] = None) -> bool:
        try:
            image = self._source.decode(data, source)
        except ImageDecodeError as exc:
            logger.warning("Image decode failed for %s: %s", element_id or "new slot", exc)
            self.load_failed.emit(element_id or "", str(exc))
            return False
        self._bind(element_id, image)
        return True

    def paste_from_clipboard(self, element_id: Optional[str] = None) -> bool:
        """Bind the clipboard image to ``element_id`` or the next free screenshot slot."""
        clipboard = QGuiApplication.clipboard()
        qimage = clipboard.image() if clipboard is not None else None
        if qimage is None or qimage.isNull():
            message = "Clipboard does not contain an image"
            logger.warning(message)
            self.load_failed.emit(element_id or "", message)
            return False
        self._bind(element_id, qimage_to_raster(qimage, source="clipboard"))
        return True

    def bind_raster(self, image: RasterImage, element_id: Optional[str] = None) -> str:
        return self._bind(element_id, image)

    def open_file_dialog(self, element_id: Optional[str] = None) -> bool:
        file_path, _ = QFileDialog.getOpenFileName(
            self._parent_widget,
            "Open Image",
            str(asset_root()),
            "Images (*.png *.jpg *.jpeg *.bmp *.tif *.tiff *.webp)",
        )
        if not file_path:
            return False
        return self.load_file(Path(file_path), element_id)
