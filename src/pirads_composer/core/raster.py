"""Decoded raster handle bound to elements and annotation backgrounds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True, eq=False)
class RasterImage:
    """Decoded RGBA pixels plus the reference they were loaded from.

    Attributes:
        pixels: ``uint8`` array of shape (height, width, 4), RGBA order
        source: Path or URL the pixels came from, if any
    """

    pixels: np.ndarray
    source: Optional[str] = None

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(f"Expected RGBA pixels of shape (h, w, 4), got {self.pixels.shape}")
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {self.pixels.dtype}")
        if self.pixels.shape[0] == 0 or self.pixels.shape[1] == 0:
            raise ValueError("Raster image has no pixels")

    @property
    def natural_width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def natural_height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def aspect_ratio(self) -> float:
        return self.natural_width / self.natural_height

    @property
    def cache_key(self) -> int:
        """Identity of this decode, stable for the object's lifetime."""
        return id(self)

    @classmethod
    def blank(cls, width: int, height: int, color=(255, 255, 255, 255), source: Optional[str] = None) -> "RasterImage":
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[...] = np.asarray(color, dtype=np.uint8)
        return cls(pixels=pixels, source=source)
