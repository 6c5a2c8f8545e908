"""
Image loading utilities for the composer.

Image references from layouts, the command line or the clipboard are decoded
with OpenCV into :class:`~pirads_composer.core.raster.RasterImage` handles
(RGBA ``uint8`` arrays) that the canvas and annotation layer bind to.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import unquote, urlparse

import cv2
import numpy as np

from .core.raster import RasterImage
from .settings import resolve_asset_path


logger = logging.getLogger(__name__)


class ImageDecodeError(RuntimeError):
    """Raised when an image source cannot be read or decoded."""


def _to_rgba(array: np.ndarray) -> np.ndarray:
    """Normalise a decoded OpenCV array to 8-bit RGBA."""
    if array.dtype == np.uint16:
        array = (array >> 8).astype(np.uint8)
    elif array.dtype != np.uint8:
        raise ImageDecodeError(f"Unsupported pixel type: {array.dtype}")

    if array.ndim == 2:
        return cv2.cvtColor(array, cv2.COLOR_GRAY2RGBA)
    channels = array.shape[2]
    if channels == 1:
        return cv2.cvtColor(array[:, :, 0], cv2.COLOR_GRAY2RGBA)
    if channels == 3:
        return cv2.cvtColor(array, cv2.COLOR_BGR2RGBA)
    if channels == 4:
        return cv2.cvtColor(array, cv2.COLOR_BGRA2RGBA)
    raise ImageDecodeError(f"Unsupported channel count: {channels}")


def decode_image_bytes(data: bytes, source: Optional[str] = None) -> RasterImage:
    """Decode encoded image bytes (PNG, JPEG, ...) into a raster handle."""
    if not data:
        raise ImageDecodeError(f"No image data{f' in {source}' if source else ''}")
    buffer = np.frombuffer(data, dtype=np.uint8)
    array = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if array is None:
        raise ImageDecodeError(f"Failed to decode image{f': {source}' if source else ''}")
    return RasterImage(pixels=np.ascontiguousarray(_to_rgba(array)), source=source)


def resolve_source(reference: Union[str, Path], base_dir: Optional[Path] = None) -> Path:
    """
    Turn an image reference into a local path.

    Plain paths and ``file://`` URLs are accepted. Relative paths are tried
    against ``base_dir`` first and the configured asset root second.
    """
    text = str(reference)
    parsed = urlparse(text)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if parsed.scheme and len(parsed.scheme) > 1:
        raise ImageDecodeError(f"Unsupported image source scheme '{parsed.scheme}': {text}")

    path = Path(text).expanduser()
    if path.is_absolute():
        return path
    candidates: List[Path] = []
    if base_dir is not None:
        candidates.append((base_dir / path).resolve())
    candidates.append(resolve_asset_path(path))
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return candidates[0]


def load_image_file(path: Union[str, Path]) -> RasterImage:
    """Read and decode an image file, raising :class:`ImageDecodeError` on failure."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ImageDecodeError(f"Cannot read image {path}: {exc}") from exc
    image = decode_image_bytes(data, source=str(path))
    logger.debug("Loaded %s (%dx%d)", path, image.natural_width, image.natural_height)
    return image


def load_image_source(reference: Union[str, Path], base_dir: Optional[Path] = None) -> RasterImage:
    return load_image_file(resolve_source(reference, base_dir))


class AssetImageSource:
    """Image source provider backed by the local file system."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self.base_dir = base_dir

    def load(self, reference: Union[str, Path]) -> RasterImage:
        return load_image_source(reference, self.base_dir)

    def decode(self, data: bytes, source: Optional[str] = None) -> RasterImage:
        return decode_image_bytes(data, source)
