from __future__ import annotations

import logging
import os

import pytest

from waydo.dispatch import CommandDispatcher, CompositorExecutor, KeyboardExecutor
from waydo.menu_tree import default_menu_tree
from waydo.navigation import NavigationPhase
from waydo.toggle_server import TOGGLE_TOKEN

pytestmark = pytest.mark.pyqt_required


@pytest.fixture
def qt_app(monkeypatch):
    monkeypatch.setenv("QT_QPA_PLATFORM", os.getenv("QT_QPA_PLATFORM", "offscreen"))
    from PyQt6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


class FakeServer:
    def __init__(self, messages) -> None:
        self.messages = list(messages)

    def drain(self):
        messages, self.messages = self.messages, []
        return messages


class RecordingCompositor(CompositorExecutor):
    def __init__(self) -> None:
        super().__init__()
        self.calls = []

    def execute(self, tokens) -> None:
        self.calls.append(list(tokens))


@pytest.fixture
def window(qt_app):
    from waydo.overlay_window import OverlayWindow

    compositor = RecordingCompositor()
    dispatcher = CommandDispatcher(compositor=compositor, keyboard=KeyboardExecutor("true"))
    win = OverlayWindow(default_menu_tree(), dispatcher)
    win.compositor = compositor
    yield win
    win.detach_toggle_server()
    win.hide()


def test_toggle_requests_show_and_hide_window(window, qt_app) -> None:
    window.attach_toggle_server(FakeServer([TOGGLE_TOKEN]))
    window._poll_toggle_requests()

    assert window.navigator.phase is NavigationPhase.AWAITING_ANCHOR
    assert window.isVisible()

    window._toggle_server = FakeServer([TOGGLE_TOKEN, "IGNORED"])
    window._poll_toggle_requests()

    assert window.navigator.phase is NavigationPhase.HIDDEN
    assert not window.isVisible()


def test_visibility_changes_are_logged_once(window, qt_app, caplog) -> None:
    with caplog.at_level(logging.DEBUG, logger="waydo.overlay"):
        window._apply_visibility(True)
        window._apply_visibility(True)
        window._apply_visibility(False)
        window._apply_visibility(False)

    assert not window.isVisible()
    messages = [record.getMessage() for record in caplog.records if "Menu overlay" in record.getMessage()]
    assert len(messages) == 2
    assert "visible" in messages[0]
    assert "hidden" in messages[1]


def test_mouse_events_drive_navigator(window, qt_app) -> None:
    from PyQt6.QtCore import QEvent, QPointF, Qt
    from PyQt6.QtGui import QMouseEvent

    def _event(kind, x, y):
        point = QPointF(x, y)
        return QMouseEvent(
            kind,
            point,
            point,
            Qt.MouseButton.LeftButton,
            Qt.MouseButton.LeftButton,
            Qt.KeyboardModifier.NoModifier,
        )

    window.navigator.show()
    window.mouseMoveEvent(_event(QEvent.Type.MouseMove, 300.0, 300.0))
    assert window.navigator.state.anchor == (300.0, 300.0)

    action_menu = window.navigator.view().points[0]
    window.mouseReleaseEvent(_event(QEvent.Type.MouseButtonRelease, *action_menu))
    assert window.navigator.state.path == [0]

    close_entry = window.navigator.view().points[3]
    window.mouseReleaseEvent(_event(QEvent.Type.MouseButtonRelease, *close_entry))
    assert window.compositor.calls == [["close-window"]]


def test_paint_does_not_raise(window, qt_app) -> None:
    window.resize(800, 600)
    window.navigator.show()
    window.navigator.handle_motion(400.0, 300.0)

    image = window.grab()

    assert not image.isNull()
