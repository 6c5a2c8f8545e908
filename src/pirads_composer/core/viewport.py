"""Viewport size, its resize hotspots and the policy values bounding it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .geometry import Rect, first_hit

logger = logging.getLogger(__name__)

# Hit-test order for the viewport's own hotspots
VIEWPORT_HANDLE_ORDER: Tuple[str, ...] = ("nw", "ne", "sw", "se", "n", "s", "w", "e")

VIEWPORT_CURSORS: Dict[str, str] = {
    "nw": "nwse-resize",
    "se": "nwse-resize",
    "ne": "nesw-resize",
    "sw": "nesw-resize",
    "n": "ns-resize",
    "s": "ns-resize",
    "w": "ew-resize",
    "e": "ew-resize",
}


@dataclass(frozen=True)
class Viewport:
    """Logical pixel size of the visible and exported frame."""

    width: int
    height: int

    @property
    def rect(self) -> Rect:
        return Rect(0.0, 0.0, float(self.width), float(self.height))

    def as_size_string(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class CanvasPolicy:
    """Tunable constants for the composition canvas.

    Attributes:
        min_viewport_width, min_viewport_height: Lower viewport bounds
        max_viewport_width, max_viewport_height: Upper viewport bounds
        resize_sensitivity: Factor applied to pointer deltas during viewport resize
        viewport_handle_size: Side of the viewport's resize hotspots
        element_handle_size: Side of each element's resize hotspots
        min_element_size: Minimum element width and height
        move_epsilon: Cumulative pointer deltas below this are ignored
        presize_tolerance: Natural-size match tolerance for pre-sized binds
        screenshot_area_size: Size of newly added screenshot areas
        element_margin: Gap used when stacking added areas and growing the viewport
        default_viewport: Size of a freshly created default scene
    """

    min_viewport_width: int = 50
    min_viewport_height: int = 50
    max_viewport_width: int = 3000
    max_viewport_height: int = 2000
    resize_sensitivity: float = 0.3
    viewport_handle_size: float = 16.0
    element_handle_size: float = 8.0
    min_element_size: float = 50.0
    move_epsilon: float = 1.0
    presize_tolerance: float = 10.0
    screenshot_area_size: Tuple[float, float] = (600.0, 400.0)
    element_margin: float = 20.0
    default_viewport: Tuple[int, int] = (1430, 680)

    def __post_init__(self) -> None:
        if self.min_viewport_width > self.max_viewport_width:
            raise ValueError("min_viewport_width exceeds max_viewport_width")
        if self.min_viewport_height > self.max_viewport_height:
            raise ValueError("min_viewport_height exceeds max_viewport_height")
        if self.resize_sensitivity <= 0:
            raise ValueError("resize_sensitivity must be positive")

    def clamp_width(self, width: float) -> int:
        return int(round(min(max(width, self.min_viewport_width), self.max_viewport_width)))

    def clamp_height(self, height: float) -> int:
        return int(round(min(max(height, self.min_viewport_height), self.max_viewport_height)))

    def clamp(self, width: float, height: float) -> Viewport:
        return Viewport(self.clamp_width(width), self.clamp_height(height))


def viewport_handle_rects(viewport: Viewport, size: float) -> Dict[str, Rect]:
    """Hotspots sit inside the frame so they stay grabbable at the surface edge."""
    w = float(viewport.width)
    h = float(viewport.height)
    half = size / 2.0
    return {
        "nw": Rect(0.0, 0.0, size, size),
        "ne": Rect(w - size, 0.0, size, size),
        "sw": Rect(0.0, h - size, size, size),
        "se": Rect(w - size, h - size, size, size),
        "n": Rect(w / 2.0 - half, 0.0, size, size),
        "s": Rect(w / 2.0 - half, h - size, size, size),
        "w": Rect(0.0, h / 2.0 - half, size, size),
        "e": Rect(w - size, h / 2.0 - half, size, size),
    }


def viewport_handle_at(viewport: Viewport, x: float, y: float, size: float) -> Optional[str]:
    return first_hit(viewport_handle_rects(viewport, size), x, y, VIEWPORT_HANDLE_ORDER)


def resized_viewport(start: Viewport, handle: str, dx: float, dy: float, policy: CanvasPolicy) -> Viewport:
    """Compute the viewport size for a drag on ``handle`` by cumulative delta (dx, dy).

    Deltas are scaled by the policy sensitivity; the result is clamped per axis.
    """
    if handle not in VIEWPORT_CURSORS:
        raise ValueError(f"Unknown viewport handle: {handle}")

    sx = dx * policy.resize_sensitivity
    sy = dy * policy.resize_sensitivity
    width = float(start.width)
    height = float(start.height)

    if "w" in handle:
        width -= sx
    elif "e" in handle:
        width += sx
    if "n" in handle:
        height -= sy
    elif "s" in handle:
        height += sy

    return policy.clamp(width, height)
