import pytest

from pirads_composer.core import AnnotationLayer, RasterImage, Tool
from pirads_composer.core.annotation import FALLBACK_SURFACE
from pirads_composer.core.geometry import Point, Stroke, parse_hex_color


def _stroke(*points) -> Stroke:
    return Stroke(points=tuple(Point(x, y) for x, y in points), color=(0, 0, 0, 255), width=3.0)


@pytest.fixture
def layer() -> AnnotationLayer:
    return AnnotationLayer()


def test_eraser_removes_whole_stroke_within_radius(layer):
    layer.strokes = [_stroke((10, 10), (20, 20))]
    assert layer.erase_at(12.0, 12.0) is True
    assert layer.strokes == []


def test_eraser_keeps_distant_strokes(layer):
    layer.strokes = [_stroke((10, 10), (20, 20))]
    assert layer.erase_at(200.0, 200.0) is False
    assert len(layer.strokes) == 1


def test_eraser_radius_is_exclusive(layer):
    layer.strokes = [_stroke((0, 0))]
    assert layer.erase_at(10.0, 0.0) is False
    assert layer.erase_at(9.9, 0.0) is True


def test_pen_gesture_commits_stroke():
    segments = []
    layer = AnnotationLayer(on_segment=lambda start, end, color, width: segments.append((start, end)))
    layer.set_lesion_number(3)

    layer.on_pointer_down(10.0, 10.0)
    assert layer.on_pointer_move(20.0, 15.0)
    assert layer.on_pointer_move(30.0, 25.0)
    stroke = layer.on_pointer_up()

    assert stroke is not None
    assert [(point.x, point.y) for point in stroke.points] == [(10.0, 10.0), (20.0, 15.0), (30.0, 25.0)]
    assert stroke.lesion_number == 3
    assert stroke.color == parse_hex_color("#51abe4")
    assert layer.strokes == [stroke]
    assert segments == [(Point(10.0, 10.0), Point(20.0, 15.0)), (Point(20.0, 15.0), Point(30.0, 25.0))]


def test_move_without_press_does_nothing(layer):
    assert layer.on_pointer_move(5.0, 5.0) is False
    assert layer.on_pointer_up() is None
    assert layer.strokes == []


def test_eraser_drag_erases(layer):
    layer.strokes = [_stroke((50, 50), (60, 60)), _stroke((300, 300))]
    layer.set_tool(Tool.ERASER)
    layer.on_pointer_down(0.0, 0.0)
    assert layer.on_pointer_move(55.0, 52.0) is True
    assert layer.on_pointer_up() is None
    assert len(layer.strokes) == 1


def test_register_lesion_advances_number_and_palette(layer):
    entry = layer.register_lesion()

    assert entry.number == 1
    assert entry.color == parse_hex_color("#51abe4")
    assert layer.lesion_number == 2
    assert layer.palette_index == 1
    assert layer.color == parse_hex_color("#ff6b6b")


def test_palette_wraps_around():
    layer = AnnotationLayer(palette=["#000000", "#ffffff"])
    for _ in range(3):
        layer.register_lesion()
    assert layer.palette_index == 1


def test_editing_overwrites_entry(layer):
    layer.register_lesion()
    layer.register_lesion()

    layer.select_lesion_for_edit(0)
    layer.set_color("#a66cff")
    layer.set_line_width(6.0)
    entry = layer.register_lesion()

    assert len(layer.lesions) == 2
    assert layer.lesions[0] == entry
    assert entry.number == 1
    assert entry.color == parse_hex_color("#a66cff")
    assert layer.editing_index is None


def test_reset_restores_initial_pen(layer):
    layer.strokes = [_stroke((1, 1))]
    layer.register_lesion()
    layer.set_tool(Tool.ERASER)
    layer.reset()

    assert layer.strokes == []
    assert layer.lesions == []
    assert layer.tool is Tool.PEN
    assert layer.lesion_number == 1
    assert layer.color == parse_hex_color("#51abe4")


def test_surface_size_follows_background(layer):
    assert layer.surface_size() == FALLBACK_SURFACE
    layer.set_background(RasterImage.blank(400, 300), source="diagram.png")
    assert layer.surface_size() == (400, 380)
    assert layer.background_source == "diagram.png"


def test_legend_layout_centres_rows(layer):
    for _ in range(3):
        layer.register_lesion()
    layout = layer.legend_layout()

    assert layout.title_y == 625
    assert [(item.x, item.y) for item in layout.items] == [(250.0, 640.0), (350.0, 640.0), (450.0, 640.0)]


def test_legend_wraps_after_five_columns(layer):
    for _ in range(7):
        layer.register_lesion()
    items = layer.legend_layout().items

    assert (items[0].x, items[0].y) == (150.0, 640.0)
    assert (items[5].x, items[5].y) == (150.0, 665.0)
    assert layer.label_for(items[6].entry) == "Läsion 7"


def test_invalid_settings_raise(layer):
    with pytest.raises(ValueError):
        layer.set_line_width(0)
    with pytest.raises(ValueError):
        layer.set_lesion_number(0)
    with pytest.raises(ValueError):
        AnnotationLayer(palette=[])
