from __future__ import annotations

from typing import Optional, Sequence, Tuple

from waydo.navigation import MenuView
from waydo.ring_geometry import Point

Rgba = Tuple[int, int, int, int]

ANCHOR_MARKER: Rgba = (255, 255, 255, 46)
CENTER_ROOT_FILL: Rgba = (191, 51, 51, 224)
CENTER_NESTED_FILL: Rgba = (56, 122, 209, 235)
CENTER_OUTLINE: Rgba = (255, 255, 255, 194)
GLYPH: Rgba = (255, 255, 255, 242)
ITEM_FILL: Rgba = (38, 38, 38, 204)
ITEM_OUTLINE: Rgba = (255, 255, 255, 178)
TEXT: Rgba = (255, 255, 255, 242)
BREADCRUMB: Rgba = (255, 255, 255, 230)


class MenuPainterAdapter:
    def fill_circle(self, x: float, y: float, radius: float, color: Rgba) -> None: ...
    def stroke_circle(self, x: float, y: float, radius: float, color: Rgba, width: float) -> None: ...
    def draw_polyline(self, points: Sequence[Point], color: Rgba, width: float) -> None: ...
    def draw_text_centered(self, x: float, y: float, text: str, color: Rgba, point_size: float) -> None: ...


def parse_color(value: Optional[str], fallback: Rgba) -> Rgba:
    """Accept ``#rrggbb`` or ``#rrggbbaa``; anything else yields ``fallback``."""
    if not value:
        return fallback
    token = value.strip().lstrip("#")
    if len(token) not in (6, 8):
        return fallback
    try:
        channels = [int(token[i : i + 2], 16) for i in range(0, len(token), 2)]
    except ValueError:
        return fallback
    if len(channels) == 3:
        channels.append(fallback[3])
    return channels[0], channels[1], channels[2], channels[3]


def render_menu(adapter: MenuPainterAdapter, view: MenuView) -> None:
    if not view.drawable:
        return
    cx, cy = view.center

    if not view.at_root:
        ax, ay = view.anchor
        adapter.fill_circle(ax, ay, 6.0, ANCHOR_MARKER)

    radius = view.center_radius
    adapter.fill_circle(cx, cy, radius, CENTER_ROOT_FILL if view.at_root else CENTER_NESTED_FILL)
    adapter.stroke_circle(cx, cy, radius, CENTER_OUTLINE, 2.0)
    if view.at_root:
        # close glyph
        adapter.draw_polyline([(cx - 7, cy - 7), (cx + 7, cy + 7)], GLYPH, 2.5)
        adapter.draw_polyline([(cx + 7, cy - 7), (cx - 7, cy + 7)], GLYPH, 2.5)
    else:
        # back chevron
        adapter.draw_polyline([(cx + 5, cy - 8), (cx - 5, cy), (cx + 5, cy + 8)], GLYPH, 2.5)

    adapter.draw_text_centered(cx, cy - 42.0, view.breadcrumb, BREADCRUMB, 13.0)

    item_radius = view.metrics.item_radius
    for entry, (bx, by) in zip(view.entries, view.points):
        adapter.fill_circle(bx, by, item_radius, parse_color(entry.color, ITEM_FILL))
        adapter.stroke_circle(bx, by, item_radius, ITEM_OUTLINE, 2.0)
        adapter.draw_text_centered(bx, by, entry.label, TEXT, 12.5)

