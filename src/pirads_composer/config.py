"""
Layout models and loader for the composer.

A layout YAML file describes the starting scene: viewport size, the ordered
element list, the annotation diagram with its lesion palette, and the canvas
size presets offered in the editor.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .assets import ImageDecodeError, load_image_source
from .core.annotation import (
    DEFAULT_LEGEND_LABEL,
    DEFAULT_LEGEND_TITLE,
    DEFAULT_PALETTE,
    AnnotationLayer,
)
from .core.canvas import CompositionCanvas
from .core.element import ElementRole
from .core.geometry import parse_hex_color
from .core.viewport import CanvasPolicy
from .settings import resolve_asset_path


logger = logging.getLogger(__name__)

_BOUNDS = CanvasPolicy()

DEFAULT_PRESETS = ["1430x680", "1200x600", "1600x800", "1920x1080"]


def parse_size_string(value: str) -> Tuple[int, int]:
    """Parse ``"WIDTHxHEIGHT"`` into a pair of positive integers."""
    parts = str(value).lower().replace(" ", "").split("x")
    if len(parts) != 2:
        raise ValueError(f"Expected WIDTHxHEIGHT, got {value!r}")
    try:
        width, height = int(parts[0]), int(parts[1])
    except ValueError as exc:
        raise ValueError(f"Expected WIDTHxHEIGHT, got {value!r}") from exc
    if width <= 0 or height <= 0:
        raise ValueError(f"Size must be positive, got {value!r}")
    return width, height


def _check_viewport_bounds(width: int, height: int) -> None:
    if not _BOUNDS.min_viewport_width <= width <= _BOUNDS.max_viewport_width:
        raise ValueError(
            f"Viewport width {width} outside {_BOUNDS.min_viewport_width}..{_BOUNDS.max_viewport_width}"
        )
    if not _BOUNDS.min_viewport_height <= height <= _BOUNDS.max_viewport_height:
        raise ValueError(
            f"Viewport height {height} outside {_BOUNDS.min_viewport_height}..{_BOUNDS.max_viewport_height}"
        )


class ViewportConfig(BaseModel):
    """Initial viewport size in logical pixels."""

    width: int = Field(default=_BOUNDS.default_viewport[0], description="Viewport width")
    height: int = Field(default=_BOUNDS.default_viewport[1], description="Viewport height")

    @model_validator(mode="before")
    @classmethod
    def _accept_size_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            width, height = parse_size_string(value)
            return {"width": width, "height": height}
        return value

    @model_validator(mode="after")
    def _validate_bounds(self) -> "ViewportConfig":
        _check_viewport_bounds(self.width, self.height)
        return self


class ElementConfig(BaseModel):
    """A placed element in the starting scene."""

    id: str = Field(..., min_length=1, description="Unique element identifier")
    role: ElementRole = Field(default=ElementRole.SCREENSHOT, description="Slot the element fills")
    rect: Tuple[float, float, float, float] = Field(..., description="(x, y, width, height)")
    presized: bool = Field(
        default=False, description="Bounds already match the image's natural size; skip the fit on bind"
    )
    image: Optional[Path] = Field(default=None, description="Image bound when the layout is loaded")

    @field_validator("rect")
    @classmethod
    def _validate_rect(cls, value: Tuple[float, float, float, float]) -> Tuple[float, float, float, float]:
        _, _, width, height = value
        if width < _BOUNDS.min_element_size or height < _BOUNDS.min_element_size:
            raise ValueError(
                f"Element size {width}x{height} is below the minimum {_BOUNDS.min_element_size:g}"
            )
        return value

    @field_validator("image")
    @classmethod
    def _validate_image(cls, value: Optional[Path]) -> Optional[Path]:
        if value is not None and not value.exists():
            raise ValueError(f"Element image not found: {value}")
        return value


class AnnotationConfig(BaseModel):
    """Diagram and pen settings for the lesion annotation layer."""

    background: Optional[str] = Field(default=None, description="Diagram image reference")
    palette: List[str] = Field(default_factory=lambda: list(DEFAULT_PALETTE), description="Lesion colours")
    line_width: float = Field(default=3.0, gt=0, description="Pen width")
    legend_title: str = Field(default=DEFAULT_LEGEND_TITLE)
    legend_label: str = Field(default=DEFAULT_LEGEND_LABEL, description="Item label with a {number} field")

    @field_validator("palette")
    @classmethod
    def _validate_palette(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("The lesion palette must contain at least one colour")
        for color in value:
            parse_hex_color(color)
        return value

    @field_validator("legend_label")
    @classmethod
    def _validate_label(cls, value: str) -> str:
        if "{number}" not in value:
            raise ValueError("legend_label must contain a {number} field")
        return value


class LayoutConfig(BaseModel):
    """Top-level layout description."""

    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    elements: List[ElementConfig]
    annotation: AnnotationConfig = Field(default_factory=AnnotationConfig)
    presets: List[str] = Field(default_factory=lambda: list(DEFAULT_PRESETS))
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Optional metadata for bookkeeping")

    @field_validator("elements")
    @classmethod
    def _validate_elements(cls, value: List[ElementConfig]) -> List[ElementConfig]:
        if not value:
            raise ValueError("The layout must include at least one element")
        seen = set()
        for element in value:
            if element.id in seen:
                raise ValueError(f"Duplicate element id: {element.id}")
            seen.add(element.id)
        return value

    @field_validator("presets")
    @classmethod
    def _validate_presets(cls, value: List[str]) -> List[str]:
        for preset in value:
            _check_viewport_bounds(*parse_size_string(preset))
        return value


def default_layout() -> LayoutConfig:
    """Primary screenshot on the left half and the diagram on the right half."""
    width, height = _BOUNDS.default_viewport
    half = width / 2.0
    return LayoutConfig(
        viewport=ViewportConfig(width=width, height=height),
        elements=[
            ElementConfig(id="screenshot-1", role=ElementRole.SCREENSHOT, rect=(0.0, 0.0, half, float(height))),
            ElementConfig(id="pirads", role=ElementRole.DIAGRAM, rect=(half, 0.0, half, float(height))),
        ],
    )


def _resolve_relative_paths(data: dict, base_path: Path) -> dict:
    """
    Replace relative image paths in the raw layout dictionary with absolute paths.

    The function mutates the dictionary in-place for convenience.
    """

    def _maybe_resolve(path_value: Optional[Union[str, Path]]) -> Optional[Path]:
        if path_value is None:
            return None
        path_obj = Path(path_value)
        candidates: List[Path] = []

        if path_obj.is_absolute():
            candidates.append(path_obj)
        else:
            candidates.append((base_path / path_obj).resolve())
            candidates.append(resolve_asset_path(path_obj))

        for candidate in candidates:
            if candidate.exists():
                return candidate

        return candidates[0]

    for element in data.get("elements", []) or []:
        if isinstance(element, dict) and element.get("image") is not None:
            element["image"] = _maybe_resolve(element["image"])

    annotation = data.get("annotation")
    if isinstance(annotation, dict) and annotation.get("background") is not None:
        background = str(annotation["background"])
        if "://" not in background:
            annotation["background"] = str(_maybe_resolve(background))

    return data


def load_layout_config(path: Union[str, Path]) -> LayoutConfig:
    """
    Load and validate a layout from a YAML file.

    Parameters
    ----------
    path:
        Path to the YAML layout file.

    Returns
    -------
    LayoutConfig
        Parsed and validated layout object.
    """

    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Layout file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        raw_data = yaml.safe_load(handle) or {}

    processed = _resolve_relative_paths(raw_data, config_path.parent)
    return LayoutConfig.model_validate(processed)


def build_canvas(
    config: LayoutConfig,
    policy: Optional[CanvasPolicy] = None,
    bind_images: bool = True,
) -> CompositionCanvas:
    """
    Create a canvas holding the layout's elements in order.

    Element images named in the layout are bound immediately when
    ``bind_images`` is set; decode failures propagate as
    :class:`~pirads_composer.assets.ImageDecodeError`.
    """
    canvas = CompositionCanvas(config.viewport.width, config.viewport.height, policy=policy)
    for element in config.elements:
        x, y, width, height = element.rect
        canvas.add_element(element.id, x, y, width, height, role=element.role, presized=element.presized)
    if bind_images:
        for element in config.elements:
            if element.image is not None:
                canvas.bind_image(element.id, load_image_source(element.image))
    return canvas


def build_annotation_layer(
    config: LayoutConfig,
    eraser_radius: float = 10.0,
    fallback_background: Optional[str] = None,
) -> AnnotationLayer:
    """
    Create the annotation layer and try to load its diagram.

    A missing or undecodable diagram is logged and the layer falls back to
    the default drawing surface.
    """
    annotation = config.annotation
    source = annotation.background or fallback_background
    layer = AnnotationLayer(
        background_source=source,
        palette=annotation.palette,
        line_width=annotation.line_width,
        eraser_radius=eraser_radius,
        legend_title=annotation.legend_title,
        legend_label=annotation.legend_label,
    )
    if source is not None:
        try:
            layer.set_background(load_image_source(source), source=source)
        except ImageDecodeError as exc:
            logger.warning("Diagram not available, using default surface: %s", exc)
    return layer
