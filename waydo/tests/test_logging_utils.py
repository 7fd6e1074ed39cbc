from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from waydo.logging_utils import (
    LOG_FILENAME,
    LOGGER_NAME,
    build_rotating_file_handler,
    configure_logging,
    resolve_log_level,
    resolve_logs_dir,
)


@pytest.fixture(autouse=True)
def _restore_logger(monkeypatch):
    logger = logging.getLogger(LOGGER_NAME)
    level, propagate, handlers = logger.level, logger.propagate, list(logger.handlers)
    monkeypatch.delenv("WAYDO_PROPAGATE_LOGS", raising=False)
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate


def test_resolve_logs_dir_prefers_explicit(tmp_path: Path) -> None:
    target = tmp_path / "explicit"
    assert resolve_logs_dir(target) == target
    assert target.is_dir()


def test_resolve_logs_dir_uses_xdg_state(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    assert resolve_logs_dir() == tmp_path / "state" / "waydo"


def test_rotating_handler_retention(tmp_path: Path) -> None:
    handler = build_rotating_file_handler(tmp_path, "x.log", retention=3)
    try:
        assert isinstance(handler, RotatingFileHandler)
        assert handler.backupCount == 2
    finally:
        handler.close()

    single = build_rotating_file_handler(tmp_path, "y.log", retention=0)
    try:
        assert single.backupCount == 0
    finally:
        single.close()


def test_resolve_log_level() -> None:
    assert resolve_log_level(True) == logging.DEBUG
    assert resolve_log_level(False) == logging.INFO


def test_configure_logging_writes_file_and_replaces_handlers(tmp_path: Path) -> None:
    logger = configure_logging(debug=True, log_dir=tmp_path, console=False)
    configure_logging(debug=True, log_dir=tmp_path, console=False)

    owned = [h for h in logger.handlers if getattr(h, "_waydo_handler", False)]
    assert len(owned) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False

    logging.getLogger("waydo.navigation").debug("hello from test")
    owned[0].flush()
    assert "hello from test" in (tmp_path / LOG_FILENAME).read_text(encoding="utf-8")


def test_propagation_is_opt_in(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("WAYDO_PROPAGATE_LOGS", "1")
    logger = configure_logging(debug=False, log_dir=tmp_path, console=False)
    assert logger.propagate is True
    assert logger.level == logging.INFO
