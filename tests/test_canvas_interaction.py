import pytest

from pirads_composer.core import CompositionCanvas, ElementRole, InteractionMode, InteractionState
from pirads_composer.core.geometry import Rect


def test_default_layout_splits_viewport(default_canvas):
    assert default_canvas.viewport.as_size_string() == "1430x680"
    assert [element.id for element in default_canvas] == ["screenshot-1", "pirads"]
    assert default_canvas.element("screenshot-1").rect == Rect(0.0, 0.0, 715.0, 680.0)
    assert default_canvas.element("pirads").role is ElementRole.DIAGRAM


def test_duplicate_and_unknown_ids(canvas):
    with pytest.raises(ValueError):
        canvas.add_element("shot", 0.0, 0.0, 100.0, 100.0)
    with pytest.raises(KeyError):
        canvas.element("missing")
    assert canvas.get_element("missing") is None


def test_pointer_down_priority(canvas):
    # Viewport hotspot first
    assert canvas.on_pointer_down(5.0, 5.0) is InteractionMode.VIEWPORT_RESIZING
    canvas.on_pointer_up()

    # Element handle next
    assert canvas.on_pointer_down(300.0, 200.0) is InteractionMode.ELEMENT_RESIZING
    assert canvas.interaction.handle == "se"
    canvas.on_pointer_up()

    # Body selects and starts a move
    assert canvas.on_pointer_down(150.0, 150.0) is InteractionMode.ELEMENT_MOVING
    assert canvas.selected is canvas.element("shot")
    canvas.on_pointer_up()

    # Empty space clears the selection
    assert canvas.on_pointer_down(600.0, 600.0) is InteractionMode.IDLE
    assert canvas.selected is None


def test_viewport_handle_wins_over_overlapping_element(canvas):
    canvas.add_element("corner", 0.0, 0.0, 100.0, 100.0)
    # (2, 2) is on the viewport hotspot, the element's nw handle and its body
    assert canvas.element_handle_at(2.0, 2.0)[0].id == "corner"
    assert canvas.element_at(2.0, 2.0).id == "corner"

    assert canvas.on_pointer_down(2.0, 2.0) is InteractionMode.VIEWPORT_RESIZING
    assert canvas.interaction.handle == "nw"
    assert canvas.selected is None


def test_element_handle_wins_over_other_element_body(canvas):
    canvas.add_element("wide", 250.0, 150.0, 300.0, 300.0)
    assert canvas.element("wide").contains_point(300.0, 200.0)

    assert canvas.on_pointer_down(300.0, 200.0) is InteractionMode.ELEMENT_RESIZING
    assert canvas.interaction.element_id == "shot"
    assert canvas.interaction.handle == "se"
    canvas.on_pointer_up()

    assert canvas.on_pointer_down(400.0, 300.0) is InteractionMode.ELEMENT_MOVING
    assert canvas.interaction.element_id == "wide"


def test_body_hit_uses_paint_order(canvas):
    canvas.add_element("over", 150.0, 120.0, 200.0, 100.0)
    assert canvas.element_at(200.0, 150.0).id == "shot"


def test_move_ignores_sub_epsilon_jitter(canvas):
    canvas.on_pointer_down(150.0, 150.0)
    assert canvas.on_pointer_move(150.5, 150.5) is False
    assert canvas.element("shot").rect == Rect(100.0, 100.0, 200.0, 100.0)

    assert canvas.on_pointer_move(200.0, 180.0) is True
    assert (canvas.element("shot").x, canvas.element("shot").y) == (150.0, 130.0)

    canvas.on_pointer_up(200.0, 180.0)
    assert canvas.interaction.mode is InteractionMode.IDLE
    assert canvas.on_pointer_move(300.0, 300.0) is False


def test_move_is_clamped_into_viewport(canvas):
    canvas.on_pointer_down(150.0, 150.0)
    canvas.on_pointer_move(1000.0, 1000.0)
    assert canvas.element("shot").rect == Rect(800.0, 700.0, 200.0, 100.0)

    canvas.on_pointer_move(-500.0, -500.0)
    assert (canvas.element("shot").x, canvas.element("shot").y) == (0.0, 0.0)


def test_element_resize_gesture(canvas):
    canvas.on_pointer_down(300.0, 150.0)
    assert canvas.interaction.handle == "e"

    assert canvas.on_pointer_move(350.0, 150.0) is True
    assert canvas.element("shot").width == 250.0

    # Rejected below the minimum; last accepted bounds stay
    assert canvas.on_pointer_move(100.0, 150.0) is False
    assert canvas.element("shot").width == 250.0


def test_remove_element_keeps_last_one(canvas):
    assert canvas.remove_element("shot") is False
    canvas.add_element("other", 400.0, 400.0, 100.0, 100.0)
    assert canvas.remove_element("shot") is True
    assert canvas.remove_element("shot") is False
    assert len(canvas) == 1


def test_add_screenshot_area_stacks_below_and_grows_viewport(default_canvas):
    element = default_canvas.add_screenshot_area()

    assert element.id == "screenshot-2"
    assert element.role is ElementRole.ADDITIONAL
    assert element.rect == Rect(20.0, 700.0, 600.0, 400.0)
    assert default_canvas.viewport.as_size_string() == "1430x1120"

    assert default_canvas.add_screenshot_area().id == "screenshot-3"


def test_additional_area_takes_natural_size(default_canvas, raster_factory):
    area = default_canvas.add_screenshot_area()
    default_canvas.bind_image(area.id, raster_factory(800, 500))

    assert area.rect == Rect(20.0, 700.0, 800.0, 500.0)
    assert area.presized
    assert default_canvas.viewport.height == 1220


def test_free_screenshot_slot_skips_diagram_and_bound(default_canvas, raster_factory):
    assert default_canvas.free_screenshot_slot().id == "screenshot-1"
    default_canvas.bind_image("screenshot-1", raster_factory(100, 100))
    slot = default_canvas.free_screenshot_slot()
    assert slot.id == "screenshot-2"
    assert slot.role is ElementRole.ADDITIONAL


def test_hover_cursor(canvas):
    assert canvas.hover_cursor(5.0, 5.0) == "nwse-resize"
    assert canvas.hover_cursor(500.0, 5.0) == "ns-resize"
    assert canvas.hover_cursor(300.0, 200.0) == "se-resize"
    assert canvas.hover_cursor(150.0, 150.0) == "move"
    assert canvas.hover_cursor(600.0, 600.0) == "default"


def test_redraw_callback_fires_on_changes():
    calls = []
    canvas = CompositionCanvas(800, 600, on_redraw=lambda: calls.append(1))
    canvas.add_element("a", 0.0, 0.0, 100.0, 100.0)
    canvas.select("a")
    assert len(calls) == 2
    assert canvas.revision == 2


def test_move_with_stale_gesture_state_is_ignored(canvas):
    canvas.interaction = InteractionState(
        mode=InteractionMode.ELEMENT_MOVING,
        element_id="gone",
        anchor=(0.0, 0.0),
        element_snapshot=Rect(0.0, 0.0, 100.0, 100.0),
    )
    assert canvas.on_pointer_move(50.0, 50.0) is False

    canvas.interaction = InteractionState(
        mode=InteractionMode.ELEMENT_RESIZING,
        element_id="shot",
        anchor=(0.0, 0.0),
    )
    assert canvas.on_pointer_move(50.0, 50.0) is False
    assert canvas.element("shot").rect == Rect(100.0, 100.0, 200.0, 100.0)
