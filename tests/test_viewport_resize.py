import pytest

from pirads_composer.core import CanvasPolicy, CompositionCanvas, ElementRole, InteractionMode, Viewport
from pirads_composer.core.geometry import Rect
from pirads_composer.core.viewport import resized_viewport, viewport_handle_at


def test_viewport_hotspots_sit_inside_frame():
    viewport = Viewport(1000, 800)
    assert viewport_handle_at(viewport, 999.0, 799.0, 16.0) == "se"
    assert viewport_handle_at(viewport, 500.0, 5.0, 16.0) == "n"
    assert viewport_handle_at(viewport, 995.0, 400.0, 16.0) == "e"
    assert viewport_handle_at(viewport, 1005.0, 400.0, 16.0) is None


@pytest.mark.parametrize(
    "handle, dx, dy, expected",
    [
        ("e", 100.0, 0.0, (1030, 800)),
        ("w", -100.0, 0.0, (1030, 800)),
        ("s", 0.0, 100.0, (1000, 830)),
        ("n", 0.0, 100.0, (1000, 770)),
        ("se", 100.0, 100.0, (1030, 830)),
        ("nw", 100.0, 100.0, (970, 770)),
    ],
)
def test_resize_applies_sensitivity(handle, dx, dy, expected):
    result = resized_viewport(Viewport(1000, 800), handle, dx, dy, CanvasPolicy())
    assert (result.width, result.height) == expected


def test_resize_clamps_each_axis():
    policy = CanvasPolicy()
    assert resized_viewport(Viewport(1000, 800), "se", -1e6, 1e6, policy) == Viewport(50, 2000)
    assert resized_viewport(Viewport(1000, 800), "nw", -1e6, 1e6, policy) == Viewport(3000, 50)


def test_viewport_drag_never_moves_elements(canvas):
    canvas.add_element("edge", 900.0, 700.0, 100.0, 100.0)
    before = {element.id: element.rect for element in canvas}

    assert canvas.on_pointer_down(995.0, 400.0) is InteractionMode.VIEWPORT_RESIZING
    assert canvas.on_pointer_move(-5.0, 400.0) is True
    assert canvas.viewport.width == 700
    assert {element.id: element.rect for element in canvas} == before

    # Cumulative from the drag start, not from the last frame
    canvas.on_pointer_move(1095.0, 400.0)
    assert canvas.viewport.width == 1030
    canvas.on_pointer_up()
    assert {element.id: element.rect for element in canvas} == before


def test_apply_preset(canvas):
    canvas.apply_preset("1920x1080")
    assert canvas.viewport == Viewport(1920, 1080)
    canvas.apply_preset("5000X5000")
    assert canvas.viewport == Viewport(3000, 2000)
    with pytest.raises(ValueError):
        canvas.apply_preset("wide")
    assert canvas.element("shot").rect == Rect(100.0, 100.0, 200.0, 100.0)


def test_fit_viewport_to_diagram(default_canvas, raster_factory):
    assert default_canvas.fit_viewport_to_role(ElementRole.DIAGRAM) is False

    default_canvas.bind_image("pirads", raster_factory(500, 900))
    assert default_canvas.fit_viewport_to_role(ElementRole.DIAGRAM) is True
    assert default_canvas.viewport == Viewport(1430, 900)


def test_constructor_clamps_viewport():
    canvas = CompositionCanvas(10, 99999)
    assert canvas.viewport == Viewport(50, 2000)


def test_policy_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        CanvasPolicy(min_viewport_width=500, max_viewport_width=100)
