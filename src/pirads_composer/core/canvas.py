"""Composition canvas: element registry, viewport and the pointer state machine."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .element import HANDLE_CURSORS, ElementRole, PlacedElement
from .geometry import Rect
from .raster import RasterImage
from .viewport import (
    VIEWPORT_CURSORS,
    CanvasPolicy,
    Viewport,
    resized_viewport,
    viewport_handle_at,
    viewport_handle_rects,
)

logger = logging.getLogger(__name__)

RedrawCallback = Callable[[], None]


class InteractionMode(str, Enum):
    IDLE = "idle"
    VIEWPORT_RESIZING = "viewport_resizing"
    ELEMENT_RESIZING = "element_resizing"
    ELEMENT_MOVING = "element_moving"


@dataclass
class InteractionState:
    """Transient gesture state, cleared on pointer-up."""

    mode: InteractionMode = InteractionMode.IDLE
    element_id: Optional[str] = None
    handle: Optional[str] = None
    anchor: Optional[Tuple[float, float]] = None
    element_snapshot: Optional[Rect] = None
    viewport_snapshot: Optional[Viewport] = None

    @property
    def active(self) -> bool:
        return self.mode is not InteractionMode.IDLE


class CompositionCanvas:
    """Ordered set of placed elements rendered into a resizable viewport.

    Elements are kept in an id-keyed registry whose insertion order is the
    paint order. Pointer handlers are plain methods over explicit state so the
    canvas can be driven without any UI toolkit.
    """

    def __init__(
        self,
        width: int,
        height: int,
        policy: Optional[CanvasPolicy] = None,
        on_redraw: Optional[RedrawCallback] = None,
    ) -> None:
        self.policy = policy or CanvasPolicy()
        self.viewport = self.policy.clamp(width, height)
        self.on_redraw = on_redraw
        self.interaction = InteractionState()
        self.revision = 0
        self._elements: "OrderedDict[str, PlacedElement]" = OrderedDict()
        self._screenshot_counter = 1

    @classmethod
    def with_default_layout(
        cls,
        policy: Optional[CanvasPolicy] = None,
        on_redraw: Optional[RedrawCallback] = None,
    ) -> "CompositionCanvas":
        """Primary screenshot on the left half, diagram on the right half."""
        policy = policy or CanvasPolicy()
        width, height = policy.default_viewport
        canvas = cls(width, height, policy=policy, on_redraw=on_redraw)
        half = canvas.viewport.width / 2.0
        canvas.add_element("screenshot-1", 0.0, 0.0, half, float(canvas.viewport.height), role=ElementRole.SCREENSHOT)
        canvas.add_element("pirads", half, 0.0, half, float(canvas.viewport.height), role=ElementRole.DIAGRAM)
        return canvas

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[PlacedElement]:
        return iter(list(self._elements.values()))

    def __contains__(self, element_id: object) -> bool:
        return element_id in self._elements

    @property
    def elements(self) -> List[PlacedElement]:
        return list(self._elements.values())

    def element(self, element_id: str) -> PlacedElement:
        try:
            return self._elements[element_id]
        except KeyError:
            raise KeyError(f"Unknown element: {element_id}") from None

    def get_element(self, element_id: str) -> Optional[PlacedElement]:
        return self._elements.get(element_id)

    def element_for_role(self, role: ElementRole) -> Optional[PlacedElement]:
        """Return the first element in paint order filling ``role``."""
        for element in self._elements.values():
            if element.role is role:
                return element
        return None

    def add_element(
        self,
        element_id: str,
        x: float,
        y: float,
        width: float,
        height: float,
        role: ElementRole = ElementRole.SCREENSHOT,
        presized: bool = False,
    ) -> PlacedElement:
        if element_id in self._elements:
            raise ValueError(f"Duplicate element id: {element_id}")
        element = PlacedElement(
            id=element_id,
            x=x,
            y=y,
            width=width,
            height=height,
            role=role,
            min_width=self.policy.min_element_size,
            min_height=self.policy.min_element_size,
            presized=presized,
            handle_size=self.policy.element_handle_size,
        )
        self._elements[element_id] = element
        self._track_screenshot_id(element_id)
        logger.debug("Added element %s (%s) at %s", element_id, role.value, element.rect.as_tuple())
        self._changed()
        return element

    def remove_element(self, element_id: str) -> bool:
        """Remove an element; the last remaining element is never removed."""
        if element_id not in self._elements or len(self._elements) <= 1:
            return False
        del self._elements[element_id]
        if self.interaction.element_id == element_id:
            self.interaction = InteractionState()
        self._changed()
        return True

    def add_screenshot_area(self) -> PlacedElement:
        """Stack a new additional screenshot area below the lowest element.

        The viewport grows in height when the new area would not fit.
        """
        margin = self.policy.element_margin
        width, height = self.policy.screenshot_area_size
        if self._elements:
            y = max(element.rect.bottom for element in self._elements.values()) + margin
        else:
            y = margin
        self._screenshot_counter += 1
        element_id = f"screenshot-{self._screenshot_counter}"
        while element_id in self._elements:
            self._screenshot_counter += 1
            element_id = f"screenshot-{self._screenshot_counter}"

        required = y + height + margin
        if required > self.viewport.height:
            self._set_viewport(self.viewport.width, required)
        return self.add_element(element_id, margin, y, width, height, role=ElementRole.ADDITIONAL)

    def free_screenshot_slot(self) -> PlacedElement:
        """First unbound screenshot element, or a newly added screenshot area."""
        for element in self._elements.values():
            if element.role is not ElementRole.DIAGRAM and element.image is None:
                return element
        return self.add_screenshot_area()

    def _track_screenshot_id(self, element_id: str) -> None:
        prefix, _, suffix = element_id.rpartition("-")
        if prefix == "screenshot" and suffix.isdigit():
            self._screenshot_counter = max(self._screenshot_counter, int(suffix))

    # ------------------------------------------------------------------
    # Image binding
    # ------------------------------------------------------------------
    def bind_image(self, element_id: str, image: RasterImage) -> PlacedElement:
        """Bind ``image`` to an element.

        Additional screenshot areas are first resized to the image's natural
        size and the viewport grows to fit them; other elements are fitted
        into their current bounds.
        """
        element = self.element(element_id)
        if element.role is ElementRole.ADDITIONAL:
            element.width = max(float(image.natural_width), element.min_width)
            element.height = max(float(image.natural_height), element.min_height)
            element.presized = True
            required = element.y + element.height + self.policy.element_margin
            if required > self.viewport.height:
                self._set_viewport(self.viewport.width, required)
        refit = element.bind_image(image, tolerance=self.policy.presize_tolerance)
        logger.info(
            "Bound %dx%d image to %s%s",
            image.natural_width,
            image.natural_height,
            element_id,
            "" if refit else " at natural size",
        )
        self._changed()
        return element

    def clear_image(self, element_id: str) -> None:
        self.element(element_id).unbind_image()
        self._changed()

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------
    def set_viewport_size(self, width: float, height: float) -> Viewport:
        """Set the viewport directly (clamped); element bounds are untouched."""
        return self._set_viewport(width, height)

    def apply_preset(self, preset: str) -> Viewport:
        parts = preset.lower().split("x")
        if len(parts) != 2:
            raise ValueError(f"Invalid canvas size preset: {preset!r}")
        try:
            width, height = (int(part.strip()) for part in parts)
        except ValueError as exc:
            raise ValueError(f"Invalid canvas size preset: {preset!r}") from exc
        return self._set_viewport(width, height)

    def fit_viewport_to_role(self, role: ElementRole = ElementRole.DIAGRAM) -> bool:
        """Match the viewport height to the natural height of the image bound to ``role``."""
        element = self.element_for_role(role)
        if element is None or element.image is None:
            return False
        width = max(self.viewport.width, self.policy.default_viewport[0])
        self._set_viewport(width, element.natural_height)
        return True

    def handle_canvas_resize(self, dx: float, dy: float, handle: str, start: Optional[Viewport] = None) -> Viewport:
        """Resize the viewport from a drag on ``handle`` without touching any element."""
        base = start or self.interaction.viewport_snapshot or self.viewport
        target = resized_viewport(base, handle, dx, dy, self.policy)
        snapshot = {element_id: element.rect for element_id, element in self._elements.items()}
        self.viewport = target
        for element_id, rect in snapshot.items():
            self._elements[element_id].apply_rect(rect)
        return target

    def _set_viewport(self, width: float, height: float) -> Viewport:
        previous = self.viewport
        self.viewport = self.policy.clamp(width, height)
        if self.viewport != previous:
            logger.debug("Viewport %s -> %s", previous.as_size_string(), self.viewport.as_size_string())
        self._changed()
        return self.viewport

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    @property
    def selected(self) -> Optional[PlacedElement]:
        for element in self._elements.values():
            if element.selected:
                return element
        return None

    def select(self, element_id: str) -> None:
        target = self.element(element_id)
        for element in self._elements.values():
            element.selected = element is target
        self._changed()

    def clear_selection(self) -> None:
        for element in self._elements.values():
            element.selected = False
        self._changed()

    # ------------------------------------------------------------------
    # Hit testing
    # ------------------------------------------------------------------
    def viewport_handle_at(self, x: float, y: float) -> Optional[str]:
        return viewport_handle_at(self.viewport, x, y, self.policy.viewport_handle_size)

    def viewport_handle_rects(self) -> Dict[str, Rect]:
        return viewport_handle_rects(self.viewport, self.policy.viewport_handle_size)

    def element_handle_at(self, x: float, y: float) -> Optional[Tuple[PlacedElement, str]]:
        for element in self._elements.values():
            handle = element.handle_at(x, y)
            if handle is not None:
                return element, handle
        return None

    def element_at(self, x: float, y: float) -> Optional[PlacedElement]:
        """First element in paint order whose body contains the point."""
        for element in self._elements.values():
            if element.contains_point(x, y):
                return element
        return None

    def hover_cursor(self, x: float, y: float) -> str:
        handle = self.viewport_handle_at(x, y)
        if handle is not None:
            return VIEWPORT_CURSORS[handle]
        hit = self.element_handle_at(x, y)
        if hit is not None:
            return HANDLE_CURSORS[hit[1]]
        if self.element_at(x, y) is not None:
            return "move"
        return "default"

    # ------------------------------------------------------------------
    # Pointer state machine
    # ------------------------------------------------------------------
    def on_pointer_down(self, x: float, y: float) -> InteractionMode:
        handle = self.viewport_handle_at(x, y)
        if handle is not None:
            self.interaction = InteractionState(
                mode=InteractionMode.VIEWPORT_RESIZING,
                handle=handle,
                anchor=(x, y),
                viewport_snapshot=self.viewport,
            )
            logger.debug("Viewport resize started from %s", handle)
            return self.interaction.mode

        hit = self.element_handle_at(x, y)
        if hit is not None:
            element, handle = hit
            self.interaction = InteractionState(
                mode=InteractionMode.ELEMENT_RESIZING,
                element_id=element.id,
                handle=handle,
                anchor=(x, y),
                element_snapshot=element.snapshot(),
            )
            logger.debug("Resize of %s started from %s", element.id, handle)
            return self.interaction.mode

        element = self.element_at(x, y)
        if element is not None:
            self.interaction = InteractionState(
                mode=InteractionMode.ELEMENT_MOVING,
                element_id=element.id,
                anchor=(x, y),
                element_snapshot=element.snapshot(),
            )
            self.select(element.id)
            return self.interaction.mode

        self.interaction = InteractionState()
        self.clear_selection()
        return self.interaction.mode

    def on_pointer_move(self, x: float, y: float) -> bool:
        """Apply the active transform; returns True when state changed.

        While idle only the hover cursor changes, which callers query through
        :meth:`hover_cursor`.
        """
        state = self.interaction
        if not state.active or state.anchor is None:
            return False

        dx = x - state.anchor[0]
        dy = y - state.anchor[1]
        epsilon = self.policy.move_epsilon
        if abs(dx) < epsilon and abs(dy) < epsilon:
            return False

        if state.mode is InteractionMode.VIEWPORT_RESIZING:
            if state.handle is None:
                return False
            self.handle_canvas_resize(dx, dy, state.handle, start=state.viewport_snapshot)
            self._changed()
            return True

        element = self.get_element(state.element_id) if state.element_id is not None else None
        snapshot = state.element_snapshot
        if element is None or snapshot is None:
            logger.warning("Gesture %s lost its element; ignoring move", state.mode.value)
            return False
        if state.mode is InteractionMode.ELEMENT_RESIZING:
            if state.handle is None or not element.resize_from_handle(state.handle, dx, dy, snapshot):
                return False
        else:
            element.move_by(dx, dy, snapshot)
        self.constrain_to_viewport(element)
        self._changed()
        return True

    def on_pointer_up(self, x: Optional[float] = None, y: Optional[float] = None) -> None:
        if self.interaction.active:
            logger.debug("Gesture %s finished", self.interaction.mode.value)
        self.interaction = InteractionState()
        self._changed()

    def constrain_to_viewport(self, element: PlacedElement) -> None:
        """Translate ``element`` back inside the viewport; skipped during viewport resize."""
        if self.interaction.mode is InteractionMode.VIEWPORT_RESIZING:
            return
        if element.x + element.width > self.viewport.width:
            element.x = self.viewport.width - element.width
        if element.y + element.height > self.viewport.height:
            element.y = self.viewport.height - element.height
        if element.x < 0:
            element.x = 0.0
        if element.y < 0:
            element.y = 0.0

    # ------------------------------------------------------------------
    # Redraw notification
    # ------------------------------------------------------------------
    def _changed(self) -> None:
        self.revision += 1
        if self.on_redraw is not None:
            self.on_redraw()
