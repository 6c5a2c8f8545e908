"""Freehand lesion annotation over a fixed background diagram."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from .geometry import Color, Point, Stroke, parse_hex_color
from .raster import RasterImage

logger = logging.getLogger(__name__)

DEFAULT_PALETTE: Tuple[str, ...] = ("#51abe4", "#ff6b6b", "#4ecdc4", "#ffd93d", "#a66cff", "#ff9f43")
DEFAULT_LINE_WIDTH = 3.0
DEFAULT_ERASER_RADIUS = 10.0
LEGEND_HEIGHT = 80
FALLBACK_SURFACE = (800, 680)
DEFAULT_LEGEND_TITLE = "Läsionen:"
DEFAULT_LEGEND_LABEL = "Läsion {number}"

# Legend geometry, in logical units relative to the bottom of the image
LEGEND_TITLE_OFFSET = 25
LEGEND_FIRST_ROW_OFFSET = 40
LEGEND_ROW_SPACING = 25
LEGEND_ITEM_WIDTH = 100
LEGEND_MAX_COLUMNS = 5

SegmentCallback = Callable[[Point, Point, Color, float], None]


class Tool(str, Enum):
    PEN = "pen"
    ERASER = "eraser"


@dataclass(frozen=True)
class LesionEntry:
    """One legend row: the lesion number and the pen settings it was drawn with."""

    number: int
    color: Color
    line_width: float


@dataclass(frozen=True)
class LegendItem:
    entry: LesionEntry
    x: float
    y: float


@dataclass(frozen=True)
class LegendLayout:
    title_y: float
    strip_top: float
    strip_height: float
    items: Tuple[LegendItem, ...]


class AnnotationLayer:
    """Pen/eraser surface with committed strokes and a lesion legend.

    Args:
        background: Decoded diagram, if already loaded
        background_source: Reference the diagram is reloaded from for export
        palette: Hex colours cycled through as lesions are registered
        line_width: Pen width for new strokes
        eraser_radius: Distance below which a stroke point is hit by the eraser
        legend_title: Caption above the legend items
        legend_label: Format string for each item, with a {number} field
        on_redraw: Called after every change needing a full repaint
        on_segment: Called with each live pen segment while drawing
    """

    def __init__(
        self,
        background: Optional[RasterImage] = None,
        background_source: Optional[str] = None,
        palette: Sequence[str] = DEFAULT_PALETTE,
        line_width: float = DEFAULT_LINE_WIDTH,
        eraser_radius: float = DEFAULT_ERASER_RADIUS,
        legend_height: int = LEGEND_HEIGHT,
        legend_title: str = DEFAULT_LEGEND_TITLE,
        legend_label: str = DEFAULT_LEGEND_LABEL,
        on_redraw: Optional[Callable[[], None]] = None,
        on_segment: Optional[SegmentCallback] = None,
    ) -> None:
        if not palette:
            raise ValueError("Lesion palette must contain at least one colour")
        if eraser_radius <= 0:
            raise ValueError("eraser_radius must be positive")
        self.palette: Tuple[Color, ...] = tuple(parse_hex_color(value) for value in palette)
        self.default_line_width = float(line_width)
        self.eraser_radius = float(eraser_radius)
        self.legend_height = legend_height
        self.legend_title = legend_title
        self.legend_label = legend_label
        self.on_redraw = on_redraw
        self.on_segment = on_segment

        self.background = background
        self.background_source = background_source or (background.source if background is not None else None)
        self.strokes: List[Stroke] = []
        self.lesions: List[LesionEntry] = []
        self.revision = 0
        self._reset_pen()

    def _reset_pen(self) -> None:
        self.tool = Tool.PEN
        self.lesion_number = 1
        self.palette_index = 0
        self.color: Color = self.palette[0]
        self.line_width = self.default_line_width
        self.editing_index: Optional[int] = None
        self.drawing = False
        self.current: Optional[List[Point]] = None
        self._last: Optional[Point] = None

    # ------------------------------------------------------------------
    # Surface geometry
    # ------------------------------------------------------------------
    def set_background(self, image: Optional[RasterImage], source: Optional[str] = None) -> None:
        self.background = image
        if source is not None:
            self.background_source = source
        elif image is not None and image.source is not None:
            self.background_source = image.source
        self._changed()

    def image_height(self, background: Optional[RasterImage] = None) -> int:
        raster = background if background is not None else self.background
        if raster is not None:
            return raster.natural_height
        return FALLBACK_SURFACE[1] - self.legend_height

    def surface_size(self, background: Optional[RasterImage] = None) -> Tuple[int, int]:
        """Background natural size plus the legend strip, or the fallback surface.

        ``background`` overrides the bound diagram, e.g. one reloaded for export.
        """
        raster = background if background is not None else self.background
        if raster is None:
            return FALLBACK_SURFACE
        return (raster.natural_width, raster.natural_height + self.legend_height)

    def legend_layout(self, background: Optional[RasterImage] = None) -> LegendLayout:
        """Place legend items in rows of at most five, centred horizontally."""
        width, _ = self.surface_size(background)
        image_height = self.image_height(background)
        columns = min(LEGEND_MAX_COLUMNS, len(self.lesions))
        start_x = (width - LEGEND_ITEM_WIDTH * columns) / 2.0
        start_y = image_height + LEGEND_FIRST_ROW_OFFSET
        items = []
        for index, entry in enumerate(self.lesions):
            row, col = divmod(index, columns)
            items.append(
                LegendItem(
                    entry=entry,
                    x=start_x + col * LEGEND_ITEM_WIDTH,
                    y=start_y + row * LEGEND_ROW_SPACING,
                )
            )
        return LegendLayout(
            title_y=image_height + LEGEND_TITLE_OFFSET,
            strip_top=image_height,
            strip_height=self.legend_height,
            items=tuple(items),
        )

    # ------------------------------------------------------------------
    # Tool and pen settings
    # ------------------------------------------------------------------
    def label_for(self, entry: LesionEntry) -> str:
        return self.legend_label.format(number=entry.number)

    def set_tool(self, tool: Tool) -> None:
        self.tool = Tool(tool)

    def set_color(self, color: str) -> None:
        self.color = parse_hex_color(color)
        if self.color in self.palette:
            self.palette_index = self.palette.index(self.color)

    def set_line_width(self, width: float) -> None:
        if width <= 0:
            raise ValueError("Line width must be positive")
        self.line_width = float(width)

    def set_lesion_number(self, number: int) -> None:
        if number < 1:
            raise ValueError("Lesion numbers start at 1")
        self.lesion_number = number

    # ------------------------------------------------------------------
    # Pointer handling
    # ------------------------------------------------------------------
    def on_pointer_down(self, x: float, y: float) -> None:
        self.drawing = True
        self._last = Point(x, y)
        if self.tool is Tool.PEN:
            self.current = [self._last]

    def on_pointer_move(self, x: float, y: float) -> bool:
        """Extend the live stroke or erase; returns True when anything changed."""
        if not self.drawing:
            return False
        point = Point(x, y)
        changed = False
        if self.tool is Tool.ERASER:
            changed = self.erase_at(x, y)
        elif self.current is not None:
            self.current.append(point)
            if self.on_segment is not None and self._last is not None:
                self.on_segment(self._last, point, self.color, self.line_width)
            changed = True
        self._last = point
        return changed

    def on_pointer_up(self, x: Optional[float] = None, y: Optional[float] = None) -> Optional[Stroke]:
        """Commit the live pen stroke, if any, and return it."""
        stroke = None
        if self.drawing and self.tool is Tool.PEN and self.current:
            stroke = Stroke(
                points=tuple(self.current),
                color=self.color,
                width=self.line_width,
                lesion_number=self.lesion_number,
            )
            self.strokes.append(stroke)
            self._changed()
        self.drawing = False
        self.current = None
        self._last = None
        return stroke

    def erase_at(self, x: float, y: float) -> bool:
        """Drop every committed stroke with a point closer than the eraser radius."""
        kept = [stroke for stroke in self.strokes if not stroke.has_point_within(x, y, self.eraser_radius)]
        if len(kept) == len(self.strokes):
            return False
        logger.debug("Eraser removed %d stroke(s)", len(self.strokes) - len(kept))
        self.strokes = kept
        self._changed()
        return True

    # ------------------------------------------------------------------
    # Legend
    # ------------------------------------------------------------------
    def register_lesion(self) -> LesionEntry:
        """Add the current pen settings to the legend.

        While an entry is selected for editing it is overwritten instead, and
        the running number and colour stay where they are.
        """
        entry = LesionEntry(number=self.lesion_number, color=self.color, line_width=self.line_width)
        if self.editing_index is not None:
            self.lesions[self.editing_index] = entry
            self.editing_index = None
        else:
            self.lesions.append(entry)
            self.lesion_number += 1
            self.palette_index = (self.palette_index + 1) % len(self.palette)
            self.color = self.palette[self.palette_index]
        self._changed()
        return entry

    def select_lesion_for_edit(self, index: int) -> LesionEntry:
        entry = self.lesions[index]
        self.editing_index = index
        self.lesion_number = entry.number
        self.color = entry.color
        self.line_width = entry.line_width
        return entry

    def cancel_edit(self) -> None:
        self.editing_index = None

    def reset(self) -> None:
        """Clear strokes, legend and editing state and restore the initial pen."""
        self.strokes = []
        self.lesions = []
        self._reset_pen()
        logger.info("Annotation layer reset")
        self._changed()

    def _changed(self) -> None:
        self.revision += 1
        if self.on_redraw is not None:
            self.on_redraw()
