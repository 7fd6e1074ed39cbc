"""Full-screen translucent PyQt6 surface hosting the radial menu."""
from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from PyQt6.QtCore import QPointF, QRectF, Qt, QTimer
from PyQt6.QtGui import QColor, QFont, QFontMetricsF, QGuiApplication, QMouseEvent, QPainter, QPaintEvent, QPen
from PyQt6.QtWidgets import QWidget

from waydo.dispatch import CommandDispatcher
from waydo.menu_renderer import MenuPainterAdapter, Rgba, render_menu
from waydo.menu_tree import MenuTree
from waydo.navigation import MenuNavigator
from waydo.ring_geometry import Point
from waydo.toggle_server import TOGGLE_TOKEN, ToggleServer

_LOGGER = logging.getLogger("waydo.overlay")

TOGGLE_POLL_MS = 16


def _is_wayland() -> bool:
    return QGuiApplication.platformName().lower().startswith("wayland")


def qt_after(delay_ms: int, callback: Callable[[], None]) -> object:
    """One-shot scheduler on the Qt event loop, used for deferred dispatch."""
    QTimer.singleShot(max(0, int(delay_ms)), callback)
    return None


def _qcolor(rgba: Rgba) -> QColor:
    return QColor(rgba[0], rgba[1], rgba[2], rgba[3])


class QtMenuPainterAdapter(MenuPainterAdapter):
    def __init__(self, painter: QPainter, font_family: str = "Sans") -> None:
        self._painter = painter
        self._font_family = font_family

    def fill_circle(self, x: float, y: float, radius: float, color: Rgba) -> None:
        self._painter.setPen(Qt.PenStyle.NoPen)
        self._painter.setBrush(_qcolor(color))
        self._painter.drawEllipse(QPointF(x, y), radius, radius)

    def stroke_circle(self, x: float, y: float, radius: float, color: Rgba, width: float) -> None:
        pen = QPen(_qcolor(color))
        pen.setWidthF(width)
        self._painter.setPen(pen)
        self._painter.setBrush(Qt.BrushStyle.NoBrush)
        self._painter.drawEllipse(QPointF(x, y), radius, radius)

    def draw_polyline(self, points: Sequence[Point], color: Rgba, width: float) -> None:
        pen = QPen(_qcolor(color))
        pen.setWidthF(width)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        self._painter.setPen(pen)
        self._painter.setBrush(Qt.BrushStyle.NoBrush)
        self._painter.drawPolyline([QPointF(x, y) for x, y in points])

    def draw_text_centered(self, x: float, y: float, text: str, color: Rgba, point_size: float) -> None:
        font = QFont(self._font_family)
        font.setPointSizeF(point_size)
        font.setWeight(QFont.Weight.Normal)
        self._painter.setFont(font)
        self._painter.setPen(_qcolor(color))
        metrics = QFontMetricsF(font)
        width = metrics.horizontalAdvance(text)
        height = metrics.height()
        rect = QRectF(x - width / 2.0 - 2.0, y - height / 2.0, width + 4.0, height)
        self._painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, text)


class OverlayWindow(QWidget):
    """Transparent always-on-top window that forwards pointer events to the navigator."""

    def __init__(self, tree: MenuTree, dispatcher: CommandDispatcher) -> None:
        super().__init__()
        self._last_visibility: Optional[bool] = None
        self._navigator = MenuNavigator(
            tree,
            dispatch_fn=dispatcher.dispatch,
            visibility_fn=self._apply_visibility,
        )
        self._toggle_server: Optional[ToggleServer] = None
        self._toggle_timer = QTimer(self)
        self._toggle_timer.setInterval(TOGGLE_POLL_MS)
        self._toggle_timer.timeout.connect(self._poll_toggle_requests)

        self.setWindowTitle("waydo")
        flags = Qt.WindowType.FramelessWindowHint | Qt.WindowType.WindowStaysOnTopHint
        if not _is_wayland():
            flags |= Qt.WindowType.Tool
        self.setWindowFlags(flags)
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground, True)
        self.setAttribute(Qt.WidgetAttribute.WA_NoSystemBackground, True)
        self.setMouseTracking(True)
        self.setCursor(Qt.CursorShape.ArrowCursor)

    @property
    def navigator(self) -> MenuNavigator:
        return self._navigator

    def attach_toggle_server(self, server: ToggleServer) -> None:
        self._toggle_server = server
        self._toggle_timer.start()

    def detach_toggle_server(self) -> None:
        self._toggle_timer.stop()
        self._toggle_server = None

    # Qt event handlers ------------------------------------------------------

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # noqa: N802 - Qt signature
        pos = event.position()
        if self._navigator.handle_motion(pos.x(), pos.y()):
            self.update()
        event.accept()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:  # noqa: N802 - Qt signature
        pos = event.position()
        outcome = self._navigator.handle_click(pos.x(), pos.y())
        _LOGGER.debug("Click at (%.1f, %.1f) -> %s", pos.x(), pos.y(), outcome.value)
        if self._navigator.state.visible:
            self.update()
        event.accept()

    def paintEvent(self, event: QPaintEvent) -> None:  # noqa: N802 - Qt signature
        painter = QPainter(self)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
            painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_Source)
            painter.fillRect(self.rect(), Qt.GlobalColor.transparent)
            painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_SourceOver)
            render_menu(QtMenuPainterAdapter(painter), self._navigator.view())
        finally:
            painter.end()

    # Internal helpers -----------------------------------------------------

    def _poll_toggle_requests(self) -> None:
        server = self._toggle_server
        if server is None:
            return
        messages = server.drain()
        for message in messages:
            if message == TOGGLE_TOKEN:
                self._navigator.toggle()
        if messages:
            self.update()

    def _apply_visibility(self, visible: bool) -> None:
        if visible:
            if not self.isVisible():
                self.showFullScreen()
                self.raise_()
            # Focus is re-requested on every show.
            self.activateWindow()
            self.update()
        elif self.isVisible():
            self.hide()
        if self._last_visibility != visible:
            _LOGGER.debug("Menu overlay %s; %s", "visible" if visible else "hidden", self._describe())
            self._last_visibility = visible

    def _describe(self) -> str:
        st = self._navigator.state
        return f"phase={st.phase.value} size={self.width()}x{self.height()}"
