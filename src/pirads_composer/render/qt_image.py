"""Conversions between raster handles and ``QImage``."""

from __future__ import annotations

from typing import Optional

import numpy as np
from PySide6.QtGui import QImage

from ..core.raster import RasterImage


def raster_to_qimage(image: RasterImage) -> QImage:
    """Build a ``QImage`` that owns a copy of the raster's pixels."""
    rgba = np.ascontiguousarray(image.pixels)
    height, width = rgba.shape[:2]
    qimage = QImage(rgba.data, width, height, int(rgba.strides[0]), QImage.Format.Format_RGBA8888)
    return qimage.copy()


def qimage_to_array(qimage: QImage) -> np.ndarray:
    """Return the pixels of ``qimage`` as an RGBA ``uint8`` array of shape (h, w, 4)."""
    converted = qimage.convertToFormat(QImage.Format.Format_RGBA8888)
    width = converted.width()
    height = converted.height()
    stride = converted.bytesPerLine()
    buffer = np.frombuffer(converted.constBits(), dtype=np.uint8, count=stride * height)
    rows = buffer.reshape(height, stride)[:, : width * 4]
    return rows.reshape(height, width, 4).copy()


def qimage_to_raster(qimage: QImage, source: Optional[str] = None) -> RasterImage:
    if qimage.isNull():
        raise ValueError("Cannot convert a null QImage")
    return RasterImage(pixels=qimage_to_array(qimage), source=source)
