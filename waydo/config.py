"""Settings loader for the waydo daemon."""
from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from waydo.dispatch import DEFAULT_CHORD_DELAY_MS, DEFAULT_COMMAND_TIMEOUT, DEFAULT_DEFERRED_DELAY_MS

CONFIG_ENV_VAR = "WAYDO_CONFIG"
SOCKET_ENV_VAR = "WAYDO_SOCKET"
DEBUG_ENV_VAR = "WAYDO_DEBUG"
LOG_DIR_ENV_VAR = "WAYDO_LOG_DIR"
SOCKET_NAME = "waydo.sock"
LOG_RETENTION_MIN = 1
LOG_RETENTION_MAX = 20

_TRUE_TOKENS = {"1", "true", "yes", "on"}
_FALSE_TOKENS = {"0", "false", "no", "off"}


def default_socket_path() -> Path:
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
    if runtime_dir:
        return Path(runtime_dir) / SOCKET_NAME
    return Path(tempfile.gettempdir()) / SOCKET_NAME


def default_config_dir() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / "waydo"


def resolve_config_path(explicit: Optional[str] = None) -> Path:
    if explicit:
        return Path(explicit).expanduser()
    env_override = os.environ.get(CONFIG_ENV_VAR)
    if env_override:
        return Path(env_override).expanduser()
    return default_config_dir() / "settings.json"


@dataclass(frozen=True)
class WaydoSettings:
    """Values read once at startup; nothing here is reloaded while running."""

    socket_path: Path
    menu_file: Optional[Path] = None
    log_dir: Optional[Path] = None
    log_retention: int = 5
    debug: bool = False
    deferred_delay_ms: int = DEFAULT_DEFERRED_DELAY_MS
    chord_delay_ms: int = DEFAULT_CHORD_DELAY_MS
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    compositor_binary: str = "niri"
    keyboard_binary: str = "ydotool"


def _coerce_bool(value: Any, fallback: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        token = value.strip().lower()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False
    return fallback


def _coerce_int(value: Any, fallback: int, *, minimum: int = 0, maximum: Optional[int] = None) -> int:
    if value is None or isinstance(value, bool):
        return fallback
    try:
        numeric = int(value)
    except (TypeError, ValueError):
        return fallback
    numeric = max(minimum, numeric)
    if maximum is not None:
        numeric = min(maximum, numeric)
    return numeric


def _coerce_float(value: Any, fallback: float, *, minimum: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return fallback
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return fallback
    return max(minimum, numeric)


def _coerce_path(value: Any, base: Path) -> Optional[Path]:
    if not isinstance(value, str) or not value.strip():
        return None
    path = Path(value.strip()).expanduser()
    if not path.is_absolute():
        path = base / path
    return path


def _coerce_binary(value: Any, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return fallback


def settings_from_mapping(data: Mapping[str, Any], *, base_dir: Path) -> WaydoSettings:
    defaults = WaydoSettings(socket_path=default_socket_path())
    menu_file = _coerce_path(data.get("menu_file"), base_dir)
    if menu_file is None:
        candidate = base_dir / "menu.json"
        menu_file = candidate if candidate.exists() else None
    return WaydoSettings(
        socket_path=_coerce_path(data.get("socket_path"), base_dir) or defaults.socket_path,
        menu_file=menu_file,
        log_dir=_coerce_path(data.get("log_dir"), base_dir),
        log_retention=_coerce_int(
            data.get("log_retention"),
            defaults.log_retention,
            minimum=LOG_RETENTION_MIN,
            maximum=LOG_RETENTION_MAX,
        ),
        debug=_coerce_bool(data.get("debug"), defaults.debug),
        deferred_delay_ms=_coerce_int(data.get("deferred_delay_ms"), defaults.deferred_delay_ms),
        chord_delay_ms=_coerce_int(data.get("chord_delay_ms"), defaults.chord_delay_ms),
        command_timeout=_coerce_float(data.get("command_timeout"), defaults.command_timeout, minimum=0.1),
        compositor_binary=_coerce_binary(data.get("compositor_binary"), defaults.compositor_binary),
        keyboard_binary=_coerce_binary(data.get("keyboard_binary"), defaults.keyboard_binary),
    )


def apply_env_overrides(settings: WaydoSettings, env: Optional[Mapping[str, str]] = None) -> WaydoSettings:
    env = os.environ if env is None else env
    changes: Dict[str, Any] = {}
    socket_override = env.get(SOCKET_ENV_VAR)
    if socket_override:
        changes["socket_path"] = Path(socket_override).expanduser()
    debug_override = env.get(DEBUG_ENV_VAR)
    if debug_override is not None:
        changes["debug"] = _coerce_bool(debug_override, settings.debug)
    log_dir_override = env.get(LOG_DIR_ENV_VAR)
    if log_dir_override:
        changes["log_dir"] = Path(log_dir_override).expanduser()
    return replace(settings, **changes) if changes else settings


def load_settings(path: Path, env: Optional[Mapping[str, str]] = None) -> WaydoSettings:
    """Read settings.json if present, fill defaults, then apply environment overrides."""
    data: Dict[str, Any] = {}
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        raw = None
    if raw is not None:
        try:
            loaded = json.loads(raw)
        except json.JSONDecodeError:
            loaded = {}
        if isinstance(loaded, dict):
            data = loaded
    settings = settings_from_mapping(data, base_dir=path.parent)
    return apply_env_overrides(settings, env)
