"""Positioned, resizable image placements on the composition canvas."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .geometry import (
    CORNER_HANDLES,
    HANDLE_NAMES,
    Rect,
    centered_handle_rects,
    first_hit,
)
from .raster import RasterImage

logger = logging.getLogger(__name__)

DEFAULT_MIN_SIZE = 50.0
DEFAULT_HANDLE_SIZE = 8.0
PRESIZED_TOLERANCE = 10.0

# Cursor names per element handle, CSS vocabulary
HANDLE_CURSORS: Dict[str, str] = {
    "nw": "nw-resize",
    "ne": "ne-resize",
    "se": "se-resize",
    "sw": "sw-resize",
    "n": "n-resize",
    "e": "e-resize",
    "s": "s-resize",
    "w": "w-resize",
}


class ElementRole(str, Enum):
    """Named slot an element fills in the composition."""

    SCREENSHOT = "screenshot"
    DIAGRAM = "diagram"
    ADDITIONAL = "additional"


@dataclass
class PlacedElement:
    """A rectangle on the canvas that may hold a bound raster image.

    Handle hotspots are derived from the rectangle on every query and are
    never stored.

    Attributes:
        id: Stable registry key
        x, y, width, height: Current bounds in canvas units
        role: Slot the element fills (drives border colour and placement rules)
        min_width, min_height: Lower bounds enforced by handle resizes
        presized: Bounds already match the image's natural size; binding
            within tolerance skips the aspect fit
        handle_size: Side length of each resize hotspot
    """

    id: str
    x: float
    y: float
    width: float
    height: float
    role: ElementRole = ElementRole.SCREENSHOT
    min_width: float = DEFAULT_MIN_SIZE
    min_height: float = DEFAULT_MIN_SIZE
    presized: bool = False
    handle_size: float = DEFAULT_HANDLE_SIZE
    image: Optional[RasterImage] = field(default=None, repr=False)
    natural_width: int = 0
    natural_height: int = 0
    aspect_ratio: float = 1.0
    selected: bool = False

    def __post_init__(self) -> None:
        if self.width < self.min_width or self.height < self.min_height:
            raise ValueError(
                f"Element {self.id} size {self.width}x{self.height} is below the minimum "
                f"{self.min_width}x{self.min_height}"
            )

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------
    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def is_bound(self) -> bool:
        return self.image is not None

    def snapshot(self) -> Rect:
        """Capture the rectangle used as the basis for cumulative-delta transforms."""
        return self.rect

    def apply_rect(self, rect: Rect) -> None:
        self.x = rect.x
        self.y = rect.y
        self.width = rect.width
        self.height = rect.height

    def handle_rects(self) -> Dict[str, Rect]:
        return centered_handle_rects(self.rect, self.handle_size)

    def contains_point(self, x: float, y: float) -> bool:
        return self.rect.contains(x, y)

    def handle_at(self, x: float, y: float) -> Optional[str]:
        """Return the first handle (corners, then edges) whose hotspot contains the point."""
        return first_hit(self.handle_rects(), x, y, HANDLE_NAMES)

    # ------------------------------------------------------------------
    # Image binding
    # ------------------------------------------------------------------
    def bind_image(self, image: RasterImage, tolerance: float = PRESIZED_TOLERANCE) -> bool:
        """Bind ``image`` and fit the bounds to its aspect ratio.

        Pre-sized elements whose bounds already match the natural size within
        ``tolerance`` keep their rectangle untouched.

        Returns:
            True if the bounds were re-fitted, False if they were left as-is
        """
        self.image = image
        self.natural_width = image.natural_width
        self.natural_height = image.natural_height
        self.aspect_ratio = image.aspect_ratio

        if self.presized and self._matches_natural_size(tolerance):
            logger.debug("Element %s already at natural size; skipping fit", self.id)
            return False

        self.fit_to_current_bounds()
        return True

    def unbind_image(self) -> None:
        self.image = None
        self.natural_width = 0
        self.natural_height = 0
        self.aspect_ratio = 1.0

    def fit_to_current_bounds(self) -> None:
        """Shrink one axis so the bounds match the aspect ratio, centred in the old bounds.

        Extreme aspect ratios that would push an axis below the minimum size
        are scaled back up uniformly, so the result may overhang the old bounds.
        """
        if self.image is None:
            return
        available_w = self.width
        available_h = self.height
        if available_w / available_h > self.aspect_ratio:
            new_h = available_h
            new_w = new_h * self.aspect_ratio
        else:
            new_w = available_w
            new_h = new_w / self.aspect_ratio
        scale = max(self.min_width / new_w, self.min_height / new_h)
        if scale > 1.0:
            logger.debug("Element %s fit scaled by %.2f to stay above minimum size", self.id, scale)
            new_w *= scale
            new_h *= scale
        self.x = self.x + (available_w - new_w) / 2.0
        self.y = self.y + (available_h - new_h) / 2.0
        self.width = new_w
        self.height = new_h

    def _matches_natural_size(self, tolerance: float) -> bool:
        return (
            abs(self.width - self.natural_width) < tolerance
            and abs(self.height - self.natural_height) < tolerance
        )

    # ------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------
    def resize_from_handle(self, handle: str, dx: float, dy: float, snapshot: Rect) -> bool:
        """Resize from the drag-start ``snapshot`` by the cumulative pointer delta.

        Corner handles keep the aspect ratio of a bound image and anchor the
        opposite corner; edge handles change a single axis. A result below the
        minimum size is rejected and the current bounds are kept.

        Returns:
            True if the new bounds were applied
        """
        if handle not in HANDLE_NAMES:
            raise ValueError(f"Unknown handle: {handle}")

        ox, oy, ow, oh = snapshot.as_tuple()
        x, y, w, h = ox, oy, ow, oh

        if "w" in handle:
            x = ox + dx
            w = ow - dx
        if "e" in handle:
            w = ow + dx
        if "n" in handle:
            y = oy + dy
            h = oh - dy
        if "s" in handle:
            h = oh + dy

        if handle in CORNER_HANDLES and self.image is not None:
            if handle in ("nw", "se"):
                h = w / self.aspect_ratio
            else:
                w = h * self.aspect_ratio
            if "w" in handle:
                x = ox + ow - w
            if "n" in handle:
                y = oy + oh - h

        if w < self.min_width or h < self.min_height:
            return False

        self.x, self.y, self.width, self.height = x, y, w, h
        return True

    def move_by(self, dx: float, dy: float, snapshot: Rect) -> None:
        """Translate from the drag-start ``snapshot`` by the cumulative pointer delta."""
        self.x = snapshot.x + dx
        self.y = snapshot.y + dy
