"""Pointer, keyboard and drag routing."""

import pytest

from advisor_tree.session import GraphSession


@pytest.fixture
def session(small_tree):
    session = GraphSession(small_tree, width=960, height=720)
    session.run_until_stable()
    yield session
    session.close()


def _screen(session, node_id):
    node = session.nodes_by_id[node_id]
    return session.camera.transform.apply(node.x, node.y)


def test_click_on_node_selects_it(session):
    sx, sy = _screen(session, "C")
    assert session.dispatcher.click_at(sx, sy) == "C"
    assert session.selected_id == "C"


def test_click_on_background_clears_selection(session):
    session.select("C")
    assert session.dispatcher.click_at(-5000, -5000) is None
    assert session.selected_id is None
    assert session.highlight.lineage.nodes == frozenset()


def test_hit_test_respects_radius(session):
    sx, sy = _screen(session, "B")
    node = session.nodes_by_id["B"]
    k = session.camera.transform.k
    assert session.dispatcher.hit_test(sx + node.radius * k * 0.5, sy) == "B"
    assert session.dispatcher.hit_test(sx + node.radius * k * 1.5, sy) != "B"


def test_double_click_opens_profile_link(session):
    opened = []
    session.dispatcher.on_open_link = opened.append
    assert session.dispatcher.node_double_click("A") == "https://alice.example.edu"
    assert session.dispatcher.node_double_click("B") == "https://dblp.org/pid/bob"
    assert session.dispatcher.node_double_click("C") is None
    assert session.dispatcher.node_double_click("ghost") is None
    assert opened == ["https://alice.example.edu", "https://dblp.org/pid/bob"]


def test_pointer_enter_and_leave(session):
    session.dispatcher.node_pointer_enter("A")
    assert session.hovered_id == "A"
    assert session.highlight.hover_overlay.nodes == {"A", "R", "C"}
    session.dispatcher.node_pointer_leave("A")
    assert session.hovered_id is None


def test_keyboard_focus_mirrors_hover(session):
    session.dispatcher.node_focus("C")
    assert session.hovered_id == "C"
    session.dispatcher.node_blur()
    assert session.hovered_id is None


def test_enter_selects_and_focuses(session):
    assert session.dispatcher.node_key("B", "Enter")
    assert session.selected_id == "B"
    assert session.camera.transition is not None


def test_space_selects_in_place(session):
    assert session.dispatcher.node_key("A", " ")
    assert session.selected_id == "A"
    assert session.camera.transition is None


def test_other_keys_are_ignored(session):
    assert session.dispatcher.node_key("A", "Escape") is False
    assert session.selected_id == "R"


def test_drag_pins_node_and_reheats(session):
    dispatcher = session.dispatcher
    node = session.nodes_by_id["B"]
    sx, sy = _screen(session, "B")
    start_x, start_y = node.x, node.y

    assert dispatcher.drag_start("B", sx, sy)
    assert session.simulation.alpha_target == 0.3
    assert session.simulation.running
    assert not session.stabilized

    k = session.camera.transform.k
    dispatcher.drag_move(sx + 50 * k, sy)
    session.frame()
    assert node.x == pytest.approx(start_x + 50)
    assert node.y == pytest.approx(start_y)

    dispatcher.drag_end()
    assert node.fx is None and node.fy is None
    assert session.simulation.alpha_target == 0.0
    session.run_until_stable()
    assert session.stabilized


def test_dragged_root_returns_to_centre(session):
    dispatcher = session.dispatcher
    sx, sy = _screen(session, "R")
    dispatcher.drag_start("R", sx, sy)
    dispatcher.drag_move(sx + 100, sy + 100)
    session.frame()
    assert session.nodes_by_id["R"].x != 480

    dispatcher.drag_end()
    session.frame()
    root = session.nodes_by_id["R"]
    assert (root.fx, root.fy) == (480, 360)
    assert (root.x, root.y) == (480, 360)


def test_drag_of_unknown_node(session):
    assert session.dispatcher.drag_start("ghost", 0, 0) is False
    session.dispatcher.drag_move(10, 10)
    session.dispatcher.drag_end()
    assert session.simulation.alpha_target == 0.0


def test_pan_and_wheel(session):
    before = session.camera.transform
    session.dispatcher.pan(25, -10)
    after = session.camera.transform
    assert (after.x - before.x, after.y - before.y) == pytest.approx((25, -10))

    session.dispatcher.wheel(480, 360, -500)
    assert session.camera.transform.k == pytest.approx(min(4.0, after.k * 2))


def test_resize_through_dispatcher(session):
    assert session.dispatcher.resize(640, 480)
    assert session.width == 640


def test_second_drag_releases_first_node(session):
    dispatcher = session.dispatcher
    dispatcher.drag_start("B", *_screen(session, "B"))
    dispatcher.drag_start("C", *_screen(session, "C"))

    first = session.nodes_by_id["B"]
    second = session.nodes_by_id["C"]
    assert first.fx is None and first.fy is None
    assert second.fx is not None
    assert dispatcher.drag.node_id == "C"
    assert session.simulation.alpha_target == session.options.drag_alpha_target

    dispatcher.drag_end()
    assert second.fx is None and second.fy is None


def test_second_drag_re_pins_root(session):
    dispatcher = session.dispatcher
    sx, sy = _screen(session, "R")
    dispatcher.drag_start("R", sx, sy)
    dispatcher.drag_move(sx + 80, sy + 40)
    dispatcher.drag_start("B", *_screen(session, "B"))

    root = session.nodes_by_id["R"]
    assert (root.fx, root.fy) == (480, 360)
    dispatcher.drag_end()
