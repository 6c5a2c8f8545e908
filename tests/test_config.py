from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from pirads_composer.config import (
    LayoutConfig,
    ViewportConfig,
    build_annotation_layer,
    build_canvas,
    default_layout,
    load_layout_config,
    parse_size_string,
)
from pirads_composer.core import CanvasPolicy, ElementRole
from pirads_composer.core.annotation import FALLBACK_SURFACE


def _write_layout(path: Path, data: dict) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def test_parse_size_string():
    assert parse_size_string("1430x680") == (1430, 680)
    assert parse_size_string(" 800 X 600 ") == (800, 600)
    with pytest.raises(ValueError):
        parse_size_string("800")
    with pytest.raises(ValueError):
        parse_size_string("0x600")


def test_viewport_accepts_size_string_and_checks_bounds():
    assert ViewportConfig.model_validate("1200x600") == ViewportConfig(width=1200, height=600)
    with pytest.raises(ValidationError):
        ViewportConfig.model_validate("4000x600")


def test_default_layout_matches_default_scene():
    layout = default_layout()
    canvas = build_canvas(layout)

    assert canvas.viewport.as_size_string() == "1430x680"
    assert [(element.id, element.role) for element in canvas] == [
        ("screenshot-1", ElementRole.SCREENSHOT),
        ("pirads", ElementRole.DIAGRAM),
    ]


def test_layout_rejects_duplicates_and_small_elements():
    with pytest.raises(ValidationError):
        LayoutConfig.model_validate(
            {"elements": [{"id": "a", "rect": [0, 0, 100, 100]}, {"id": "a", "rect": [0, 0, 100, 100]}]}
        )
    with pytest.raises(ValidationError):
        LayoutConfig.model_validate({"elements": [{"id": "a", "rect": [0, 0, 10, 100]}]})
    with pytest.raises(ValidationError):
        LayoutConfig.model_validate({"elements": []})


def test_annotation_validation():
    base = {"elements": [{"id": "a", "rect": [0, 0, 100, 100]}]}
    with pytest.raises(ValidationError):
        LayoutConfig.model_validate({**base, "annotation": {"palette": ["not-a-colour"]}})
    with pytest.raises(ValidationError):
        LayoutConfig.model_validate({**base, "annotation": {"legend_label": "Lesion"}})
    with pytest.raises(ValidationError):
        LayoutConfig.model_validate({**base, "presets": ["9000x100"]})


def test_load_layout_resolves_images_relative_to_file(tmp_path, png_factory):
    png_factory(tmp_path / "images" / "shot.png", 300, 600)
    layout_path = _write_layout(
        tmp_path / "layout.yaml",
        {
            "viewport": "1000x500",
            "elements": [
                {"id": "main", "rect": [0, 0, 600, 400], "image": "images/shot.png"},
                {"id": "diagram", "role": "diagram", "rect": [600, 0, 400, 500]},
            ],
        },
    )
    layout = load_layout_config(layout_path)
    assert layout.elements[0].image == (tmp_path / "images" / "shot.png").resolve()

    canvas = build_canvas(layout)
    main = canvas.element("main")
    assert main.is_bound
    assert main.rect.as_tuple() == pytest.approx((200.0, 0.0, 200.0, 400.0))


def test_missing_layout_and_image(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_layout_config(tmp_path / "missing.yaml")

    layout_path = _write_layout(
        tmp_path / "layout.yaml",
        {"elements": [{"id": "main", "rect": [0, 0, 600, 400], "image": "nope.png"}]},
    )
    with pytest.raises(ValidationError):
        load_layout_config(layout_path)


def test_build_canvas_uses_policy():
    canvas = build_canvas(default_layout(), policy=CanvasPolicy(min_element_size=10.0))
    assert canvas.element("pirads").min_width == 10.0


def test_annotation_layer_falls_back_without_diagram(caplog):
    layout = LayoutConfig.model_validate(
        {"elements": [{"id": "a", "rect": [0, 0, 100, 100]}], "annotation": {"background": "absent.png"}}
    )
    layer = build_annotation_layer(layout)

    assert layer.background is None
    assert layer.surface_size() == FALLBACK_SURFACE
    assert "using default surface" in caplog.text


def test_annotation_layer_loads_diagram_from_asset_root(asset_dir, png_factory):
    png_factory(asset_dir / "diagram.png", 420, 500)
    layout = LayoutConfig.model_validate(
        {
            "elements": [{"id": "a", "rect": [0, 0, 100, 100]}],
            "annotation": {"background": "diagram.png", "line_width": 5, "palette": ["#123456"]},
        }
    )
    layer = build_annotation_layer(layout, eraser_radius=4.0)

    assert layer.surface_size() == (420, 580)
    assert layer.line_width == 5.0
    assert layer.eraser_radius == 4.0
    assert len(layer.palette) == 1
