"""Geometric primitives shared by the composition canvas and the annotation layer."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

CORNER_HANDLES: Tuple[str, ...] = ("nw", "ne", "se", "sw")
EDGE_HANDLES: Tuple[str, ...] = ("n", "e", "s", "w")
HANDLE_NAMES: Tuple[str, ...] = CORNER_HANDLES + EDGE_HANDLES

# RGBA, 0-255 per channel
Color = Tuple[int, int, int, int]


@dataclass(frozen=True)
class Point:
    """A recorded pointer position in logical canvas units."""

    x: float
    y: float

    def distance_to(self, x: float, y: float) -> float:
        return math.hypot(self.x - x, self.y - y)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle; also used as the drag-start snapshot of an element."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, x: float, y: float) -> bool:
        """Inclusive containment test."""
        return self.x <= x <= self.right and self.y <= y <= self.bottom

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class Stroke:
    """One committed pen gesture.

    Attributes:
        points: Ordered pointer samples; never mutated after commit
        color: RGBA stroke colour
        width: Line width in logical units
        lesion_number: Lesion the pen was assigned to while drawing
    """

    points: Tuple[Point, ...]
    color: Color
    width: float
    lesion_number: Optional[int] = None

    def has_point_within(self, x: float, y: float, radius: float) -> bool:
        """Return True when any sample lies strictly closer than ``radius`` to (x, y)."""
        return any(point.distance_to(x, y) < radius for point in self.points)


def centered_handle_rects(rect: Rect, size: float) -> Dict[str, Rect]:
    """Return the eight resize hotspots centred on the corners and edge midpoints of ``rect``."""
    half = size / 2.0
    cx = rect.x + rect.width / 2.0
    cy = rect.y + rect.height / 2.0
    return {
        "nw": Rect(rect.x - half, rect.y - half, size, size),
        "ne": Rect(rect.right - half, rect.y - half, size, size),
        "se": Rect(rect.right - half, rect.bottom - half, size, size),
        "sw": Rect(rect.x - half, rect.bottom - half, size, size),
        "n": Rect(cx - half, rect.y - half, size, size),
        "e": Rect(rect.right - half, cy - half, size, size),
        "s": Rect(cx - half, rect.bottom - half, size, size),
        "w": Rect(rect.x - half, cy - half, size, size),
    }


def first_hit(hotspots: Dict[str, Rect], x: float, y: float, order: Sequence[str]) -> Optional[str]:
    """Return the first hotspot name in ``order`` whose square contains (x, y)."""
    for name in order:
        if hotspots[name].contains(x, y):
            return name
    return None


def parse_hex_color(value: str, alpha: int = 255) -> Color:
    """Convert ``#rrggbb`` / ``#rrggbbaa`` strings to an RGBA tuple."""
    text = value.strip().lstrip("#")
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) not in (6, 8):
        raise ValueError(f"Invalid colour string: {value!r}")
    try:
        channels = [int(text[i : i + 2], 16) for i in range(0, len(text), 2)]
    except ValueError as exc:
        raise ValueError(f"Invalid colour string: {value!r}") from exc
    if len(channels) == 3:
        channels.append(alpha)
    return (channels[0], channels[1], channels[2], channels[3])


def color_to_hex(color: Color) -> str:
    r, g, b, a = color
    if a == 255:
        return f"#{r:02x}{g:02x}{b:02x}"
    return f"#{r:02x}{g:02x}{b:02x}{a:02x}"
