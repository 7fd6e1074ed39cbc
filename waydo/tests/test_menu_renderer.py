from __future__ import annotations

from waydo.menu_renderer import (
    ANCHOR_MARKER,
    CENTER_NESTED_FILL,
    CENTER_ROOT_FILL,
    ITEM_FILL,
    MenuPainterAdapter,
    parse_color,
    render_menu,
)
from waydo.menu_tree import Entry, Menu, MenuTree
from waydo.navigation import MenuNavigator


class RecordingAdapter(MenuPainterAdapter):
    def __init__(self) -> None:
        self.ops: list[tuple] = []

    def fill_circle(self, x, y, radius, color) -> None:
        self.ops.append(("fill", (x, y), radius, color))

    def stroke_circle(self, x, y, radius, color, width) -> None:
        self.ops.append(("stroke", (x, y), radius, color))

    def draw_polyline(self, points, color, width) -> None:
        self.ops.append(("line", tuple(points)))

    def draw_text_centered(self, x, y, text, color, point_size) -> None:
        self.ops.append(("text", (x, y), text))

    def kinds(self, kind: str) -> list[tuple]:
        return [op for op in self.ops if op[0] == kind]


def _navigator() -> MenuNavigator:
    tree = MenuTree(
        [
            Menu(
                "root",
                (
                    Entry.make_action("Undo", "key-ctrl-z", color="#ff0000"),
                    Entry.make_submenu("More >", 1),
                    Entry.make_action("Close", "close-window"),
                ),
            ),
            Menu("more", (Entry.make_action("Redo", "key-ctrl-shift-z"),)),
        ]
    )
    return MenuNavigator(tree, dispatch_fn=lambda action: None)


def test_nothing_drawn_until_anchored() -> None:
    navigator = _navigator()
    adapter = RecordingAdapter()
    render_menu(adapter, navigator.view())
    navigator.show()
    render_menu(adapter, navigator.view())

    assert adapter.ops == []


def test_root_ring() -> None:
    navigator = _navigator()
    navigator.show()
    navigator.handle_motion(200.0, 200.0)
    adapter = RecordingAdapter()

    render_menu(adapter, navigator.view())

    fills = adapter.kinds("fill")
    assert fills[0] == ("fill", (200.0, 200.0), 24.0, CENTER_ROOT_FILL)
    assert [op[3] for op in fills[1:]] == [(255, 0, 0, ITEM_FILL[3]), ITEM_FILL, ITEM_FILL]
    assert len(adapter.kinds("line")) == 2
    assert [op[2] for op in adapter.kinds("text")] == ["Root", "Undo", "More >", "Close"]


def test_nested_ring_marks_anchor_and_draws_back_chevron() -> None:
    navigator = _navigator()
    navigator.show()
    navigator.handle_motion(200.0, 200.0)
    more_position = navigator.view().points[1]
    navigator.handle_click(*more_position)
    adapter = RecordingAdapter()

    render_menu(adapter, navigator.view())

    fills = adapter.kinds("fill")
    assert fills[0] == ("fill", (200.0, 200.0), 6.0, ANCHOR_MARKER)
    assert fills[1] == ("fill", more_position, 24.0, CENTER_NESTED_FILL)
    lines = adapter.kinds("line")
    assert len(lines) == 1 and len(lines[0][1]) == 3
    assert [op[2] for op in adapter.kinds("text")] == ["Root > More", "Redo"]


def test_parse_color() -> None:
    fallback = (1, 2, 3, 4)
    assert parse_color("#102030", fallback) == (16, 32, 48, 4)
    assert parse_color("10203040", fallback) == (16, 32, 48, 64)
    assert parse_color("#xyzxyz", fallback) == fallback
    assert parse_color("#123", fallback) == fallback
    assert parse_color(None, fallback) == fallback
