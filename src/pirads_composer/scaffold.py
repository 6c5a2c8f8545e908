"""Layout scaffolding utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml

from .config import DEFAULT_PRESETS, ViewportConfig, default_layout
from .settings import get_settings


def build_layout_stub(
    viewport: Optional[str] = None,
    diagram: Optional[str] = None,
    title: str = "report",
) -> dict:
    """Return the default layout as plain YAML-ready data."""
    layout = default_layout()
    width, height = layout.viewport.width, layout.viewport.height
    if viewport is not None:
        size = ViewportConfig.model_validate(viewport)
        width, height = size.width, size.height
        half = width / 2.0
        layout.elements[0].rect = (0.0, 0.0, half, float(height))
        layout.elements[1].rect = (half, 0.0, half, float(height))

    stub = {
        "viewport": {"width": width, "height": height},
        "elements": [
            {
                "id": element.id,
                "role": element.role.value,
                "rect": [float(value) for value in element.rect],
                "presized": element.presized,
            }
            for element in layout.elements
        ],
        "annotation": {
            "background": diagram or get_settings().diagram_image,
            "palette": list(layout.annotation.palette),
            "line_width": float(layout.annotation.line_width),
            "legend_title": layout.annotation.legend_title,
            "legend_label": layout.annotation.legend_label,
        },
        "presets": list(DEFAULT_PRESETS),
        "metadata": {"title": title},
    }
    return stub


def write_layout_stub(
    target_path: Path,
    viewport: Optional[str] = None,
    diagram: Optional[str] = None,
    title: str = "report",
) -> Path:
    target_path = Path(target_path).resolve()
    target_path.parent.mkdir(parents=True, exist_ok=True)
    stub = build_layout_stub(viewport=viewport, diagram=diagram, title=title)
    target_path.write_text(yaml.safe_dump(stub, sort_keys=False, allow_unicode=True), encoding="utf-8")
    return target_path
