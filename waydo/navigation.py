"""Navigation state machine for the radial menu.

All mutation of :class:`NavigationState` goes through :class:`MenuNavigator`,
which the overlay window drives from the Qt main thread. Qt types stay out of
this module; the window injects a dispatch callable and a visibility callback.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from waydo.menu_tree import Action, Entry, EntryKind, MenuTree
from waydo.ring_geometry import (
    CENTER_RADIUS,
    Point,
    RingMetrics,
    closest_index_for_pointer,
    in_center_control,
    in_inner_band,
    metrics_for_depth,
    ring_layout,
)

_LOGGER = logging.getLogger("waydo.navigation")

DispatchFn = Callable[[Action], None]
VisibilityFn = Callable[[bool], None]


class NavigationPhase(Enum):
    HIDDEN = "hidden"
    AWAITING_ANCHOR = "awaiting_anchor"
    AT_ROOT = "at_root"
    IN_SUBMENU = "in_submenu"


class ClickOutcome(Enum):
    IGNORED = "ignored"
    ANCHORED = "anchored"
    HIDDEN = "hidden"
    ASCENDED = "ascended"
    DESCENDED = "descended"
    DISPATCHED = "dispatched"
    QUICK_ACTIVATED = "quick_activated"
    MISSED = "missed"


@dataclass
class NavigationState:
    visible: bool = False
    anchored: bool = False
    anchor: Point = (0.0, 0.0)
    center: Point = (0.0, 0.0)
    path: List[int] = field(default_factory=list)
    center_stack: List[Point] = field(default_factory=list)

    @property
    def phase(self) -> NavigationPhase:
        if not self.visible:
            return NavigationPhase.HIDDEN
        if not self.anchored:
            return NavigationPhase.AWAITING_ANCHOR
        if self.path:
            return NavigationPhase.IN_SUBMENU
        return NavigationPhase.AT_ROOT

    @property
    def depth(self) -> int:
        return len(self.path)

    def reset(self, *, visible: bool) -> None:
        self.visible = visible
        self.anchored = False
        self.path.clear()
        self.center_stack.clear()
        if not visible:
            self.anchor = (0.0, 0.0)
            self.center = (0.0, 0.0)

    def anchor_at(self, x: float, y: float) -> None:
        self.anchored = True
        self.anchor = (x, y)
        self.center = (x, y)

    def descend(self, index: int, new_center: Point) -> None:
        self.center_stack.append(self.center)
        self.path.append(index)
        self.center = new_center

    def ascend(self) -> None:
        if not self.path:
            return
        self.path.pop()
        if self.center_stack:
            self.center = self.center_stack.pop()
        else:
            self.center = self.anchor


@dataclass(frozen=True)
class MenuView:
    """Read-only snapshot of what the overlay should draw."""

    phase: NavigationPhase
    anchor: Point
    center: Point
    depth: int
    entries: Tuple[Entry, ...]
    points: Tuple[Point, ...]
    metrics: RingMetrics
    breadcrumb: str
    center_radius: float = CENTER_RADIUS

    @property
    def drawable(self) -> bool:
        return self.phase in (NavigationPhase.AT_ROOT, NavigationPhase.IN_SUBMENU)

    @property
    def at_root(self) -> bool:
        return self.depth == 0


class MenuNavigator:
    """Applies pointer, click, and toggle events to a single NavigationState."""

    def __init__(
        self,
        tree: MenuTree,
        *,
        dispatch_fn: DispatchFn,
        visibility_fn: Optional[VisibilityFn] = None,
        state: Optional[NavigationState] = None,
    ) -> None:
        self._tree = tree
        self._dispatch = dispatch_fn
        self._visibility_fn = visibility_fn
        self._state = state if state is not None else NavigationState()

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def tree(self) -> MenuTree:
        return self._tree

    @property
    def phase(self) -> NavigationPhase:
        return self._state.phase

    def show(self) -> None:
        self._state.reset(visible=True)
        _LOGGER.debug("Menu shown; awaiting anchor")
        self._notify_visibility(True)

    def hide(self) -> None:
        was_visible = self._state.visible
        self._state.reset(visible=False)
        if was_visible:
            _LOGGER.debug("Menu hidden")
            self._notify_visibility(False)

    def toggle(self) -> None:
        if self._state.visible:
            self.hide()
        else:
            self.show()

    def handle_motion(self, x: float, y: float) -> bool:
        """Anchor on the first motion after show. Returns True when a redraw is needed."""
        st = self._state
        if not st.visible or st.anchored:
            return False
        st.anchor_at(x, y)
        _LOGGER.debug("Menu anchored at (%.1f, %.1f) by pointer motion", x, y)
        return True

    def handle_click(self, x: float, y: float) -> ClickOutcome:
        st = self._state
        if not st.visible:
            return ClickOutcome.IGNORED
        if not st.anchored:
            st.anchor_at(x, y)
            _LOGGER.debug("Menu anchored at (%.1f, %.1f) by click", x, y)
            return ClickOutcome.ANCHORED

        cx, cy = st.center
        if in_center_control(x, y, cx, cy):
            if not st.path:
                self.hide()
                return ClickOutcome.HIDDEN
            st.ascend()
            _LOGGER.debug("Ascended to depth %d; center=(%.1f, %.1f)", st.depth, *st.center)
            return ClickOutcome.ASCENDED

        entries = self._tree.current_entries(st.path)
        if not entries:
            return ClickOutcome.MISSED
        metrics = metrics_for_depth(st.depth)
        points = ring_layout(len(entries), cx, cy, metrics.ring_distance)
        idx = closest_index_for_pointer(x, y, cx, cy, points, metrics.deadzone)
        entry = self._tree.entry_at(st.path, idx) if idx is not None else None
        if entry is None:
            return ClickOutcome.MISSED

        if entry.kind is EntryKind.ACTION:
            if entry.action is None:
                return ClickOutcome.MISSED
            self._activate(entry.action, entry.label)
            return ClickOutcome.DISPATCHED

        if entry.kind is EntryKind.SUBMENU:
            default = entry.default_action
            if default is not None and in_inner_band(x, y, cx, cy, metrics):
                forced = Action(default.command, close_on_activate=True)
                self._activate(forced, entry.label)
                return ClickOutcome.QUICK_ACTIVATED
            if default is not None:
                self._activate(default, entry.label)
                if not st.visible:
                    return ClickOutcome.DISPATCHED
            st.descend(idx, points[idx])
            _LOGGER.debug(
                "Descended into '%s' (path=%s center=(%.1f, %.1f))",
                entry.display_label,
                st.path,
                *st.center,
            )
            return ClickOutcome.DESCENDED

        raise AssertionError(f"Unhandled entry kind: {entry.kind!r}")

    def view(self) -> MenuView:
        st = self._state
        entries = self._tree.current_entries(st.path) if st.anchored else ()
        metrics = metrics_for_depth(st.depth)
        points = ring_layout(len(entries), st.center[0], st.center[1], metrics.ring_distance)
        return MenuView(
            phase=st.phase,
            anchor=st.anchor,
            center=st.center,
            depth=st.depth,
            entries=tuple(entries),
            points=tuple(points),
            metrics=metrics,
            breadcrumb=self._tree.breadcrumb(st.path),
        )

    def _activate(self, action: Action, label: str) -> None:
        # Hide precedes dispatch.
        if action.close_on_activate:
            self.hide()
        _LOGGER.debug("Activating '%s': %s (close=%s)", label, action.command, action.close_on_activate)
        self._dispatch(action)

    def _notify_visibility(self, visible: bool) -> None:
        if self._visibility_fn is not None:
            self._visibility_fn(visible)
