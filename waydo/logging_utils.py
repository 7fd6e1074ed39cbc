from __future__ import annotations

import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGGER_NAME = "waydo"
LOG_FILENAME = "waydo.log"
PROPAGATE_ENV_VAR = "WAYDO_PROPAGATE_LOGS"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def resolve_logs_dir(explicit: Optional[Path] = None, log_dir_name: str = "waydo") -> Path:
    """
    Resolve the directory to store daemon logs.

    Strategy:
    - Use the explicit directory (settings or WAYDO_LOG_DIR) when given.
    - Fall back to XDG state/cache locations, then `cwd/logs/<log_dir_name>`.
    - Final fallback: tempdir/<log_dir_name>.
    """
    candidates = []
    if explicit is not None:
        candidates.append(explicit.expanduser())

    state_home = Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))
    cache_home = Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))
    candidates.append(state_home / log_dir_name)
    candidates.append(cache_home / log_dir_name)
    candidates.append(Path.cwd() / "logs" / log_dir_name)

    for target in candidates:
        try:
            target.mkdir(parents=True, exist_ok=True)
            return target
        except OSError:
            continue

    temp_fallback = Path(tempfile.gettempdir()) / log_dir_name
    temp_fallback.mkdir(parents=True, exist_ok=True)
    return temp_fallback


def build_rotating_file_handler(
    log_dir: Path,
    filename: str,
    *,
    retention: int = 5,
    max_bytes: int = 512 * 1024,
    formatter: Optional[logging.Formatter] = None,
) -> logging.Handler:
    """Construct a rotating file handler with sane defaults."""
    retention = max(1, retention)
    backup_count = max(0, retention - 1)
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / filename,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    if formatter is not None:
        handler.setFormatter(formatter)
    return handler


def resolve_log_level(debug_enabled: bool) -> int:
    return logging.DEBUG if debug_enabled else logging.INFO


def configure_logging(
    *,
    debug: bool,
    log_dir: Optional[Path] = None,
    retention: int = 5,
    console: bool = True,
) -> logging.Logger:
    """Attach file (and optionally stderr) handlers to the package logger.

    Safe to call more than once; handlers installed by a previous call are replaced.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolve_log_level(debug))
    logger.propagate = os.environ.get(PROPAGATE_ENV_VAR, "").lower() in {"1", "true", "yes", "on"}
    for handler in list(logger.handlers):
        if getattr(handler, "_waydo_handler", False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    try:
        file_handler = build_rotating_file_handler(
            resolve_logs_dir(log_dir),
            LOG_FILENAME,
            retention=retention,
            formatter=formatter,
        )
    except OSError as exc:
        file_handler = None
        logger.warning("File logging unavailable: %s", exc)
    if file_handler is not None:
        file_handler._waydo_handler = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)
    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        stream_handler._waydo_handler = True  # type: ignore[attr-defined]
        logger.addHandler(stream_handler)
    return logger
