from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional

from waydo import __version__
from waydo.config import WaydoSettings, load_settings, resolve_config_path
from waydo.dispatch import CommandDispatcher, CompositorExecutor, KeyboardExecutor, executables_available
from waydo.logging_utils import LOGGER_NAME, configure_logging
from waydo.menu_tree import load_menu_tree
from waydo.toggle_server import ToggleEndpointError, ToggleServer, send_toggle

_LOGGER = logging.getLogger(LOGGER_NAME)

MODES = ("daemon", "toggle")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="waydo", description="Radial pointer menu overlay")
    parser.add_argument("mode", nargs="?", default="toggle", choices=MODES, help="daemon or toggle (default)")
    parser.add_argument("--config", help="Path to settings.json")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def run_toggle(settings: WaydoSettings) -> int:
    try:
        send_toggle(settings.socket_path)
    except OSError as exc:
        print(f"waydo: toggle failed: {exc}", file=sys.stderr)
        return 1
    return 0


def build_dispatcher(settings: WaydoSettings, after) -> CommandDispatcher:
    return CommandDispatcher(
        compositor=CompositorExecutor(settings.compositor_binary, timeout=settings.command_timeout),
        keyboard=KeyboardExecutor(settings.keyboard_binary, timeout=settings.command_timeout),
        after=after,
        deferred_delay_ms=settings.deferred_delay_ms,
        chord_delay_ms=settings.chord_delay_ms,
    )


def run_daemon(settings: WaydoSettings) -> int:
    configure_logging(debug=settings.debug, log_dir=settings.log_dir, retention=settings.log_retention)
    _LOGGER.info("Starting waydo %s daemon (pid=%s)", __version__, os.getpid())
    _LOGGER.debug(
        "Settings: socket=%s menu=%s deferred=%dms chord=%dms timeout=%.1fs",
        settings.socket_path,
        settings.menu_file,
        settings.deferred_delay_ms,
        settings.chord_delay_ms,
        settings.command_timeout,
    )
    for binary, found in executables_available(settings.compositor_binary, settings.keyboard_binary).items():
        if not found:
            _LOGGER.warning("%s not found on PATH; its menu actions will fail", binary)

    tree = load_menu_tree(settings.menu_file)

    server = ToggleServer(settings.socket_path)
    try:
        server.start()
    except ToggleEndpointError as exc:
        _LOGGER.error("Cannot start daemon: %s", exc)
        return 1

    # Qt is imported lazily so the toggle client stays lightweight.
    from PyQt6.QtWidgets import QApplication

    from waydo.overlay_window import OverlayWindow, qt_after

    app = QApplication.instance() or QApplication([sys.argv[0]])
    app.setApplicationName("waydo")
    app.setQuitOnLastWindowClosed(False)
    window = OverlayWindow(tree, build_dispatcher(settings, qt_after))
    window.attach_toggle_server(server)
    try:
        exit_code = app.exec()
    finally:
        window.detach_toggle_server()
        server.stop()
    _LOGGER.info("waydo daemon exiting with code %s", exit_code)
    return int(exit_code)


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(resolve_config_path(args.config))
    if args.mode == "daemon":
        return run_daemon(settings)
    return run_toggle(settings)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
