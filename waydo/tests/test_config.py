from __future__ import annotations

import json
from pathlib import Path

from waydo.config import (
    LOG_RETENTION_MAX,
    WaydoSettings,
    apply_env_overrides,
    default_socket_path,
    load_settings,
    resolve_config_path,
)


def test_missing_file_gives_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("XDG_RUNTIME_DIR", str(tmp_path / "run"))

    settings = load_settings(tmp_path / "settings.json", env={})

    assert settings.socket_path == tmp_path / "run" / "waydo.sock"
    assert settings.menu_file is None
    assert settings.debug is False
    assert settings.deferred_delay_ms == 80
    assert settings.chord_delay_ms == 40
    assert settings.compositor_binary == "niri"
    assert settings.keyboard_binary == "ydotool"


def test_socket_falls_back_to_tempdir(monkeypatch) -> None:
    monkeypatch.delenv("XDG_RUNTIME_DIR", raising=False)
    assert default_socket_path().name == "waydo.sock"


def test_values_are_read_and_coerced(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps(
            {
                "socket_path": "sock/waydo.sock",
                "menu_file": "menus/custom.json",
                "debug": "yes",
                "log_retention": 99,
                "deferred_delay_ms": "150",
                "chord_delay_ms": -5,
                "command_timeout": "bad",
                "compositor_binary": "  niri-git ",
                "keyboard_binary": "",
            }
        ),
        encoding="utf-8",
    )

    settings = load_settings(path, env={})

    assert settings.socket_path == tmp_path / "sock" / "waydo.sock"
    assert settings.menu_file == tmp_path / "menus" / "custom.json"
    assert settings.debug is True
    assert settings.log_retention == LOG_RETENTION_MAX
    assert settings.deferred_delay_ms == 150
    assert settings.chord_delay_ms == 0
    assert settings.command_timeout == 5.0
    assert settings.compositor_binary == "niri-git"
    assert settings.keyboard_binary == "ydotool"


def test_menu_json_beside_settings_is_picked_up(tmp_path: Path) -> None:
    (tmp_path / "menu.json").write_text("{}", encoding="utf-8")

    settings = load_settings(tmp_path / "settings.json", env={})

    assert settings.menu_file == tmp_path / "menu.json"


def test_invalid_json_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("[1, 2", encoding="utf-8")

    assert load_settings(path, env={}).debug is False


def test_undecodable_file_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_bytes(b'{"debug": "\xff"}')

    settings = load_settings(path, env={})

    assert settings.debug is False
    assert settings.log_retention == 5


def test_env_overrides(tmp_path: Path) -> None:
    base = WaydoSettings(socket_path=tmp_path / "a.sock")

    updated = apply_env_overrides(
        base,
        {"WAYDO_SOCKET": str(tmp_path / "b.sock"), "WAYDO_DEBUG": "1", "WAYDO_LOG_DIR": str(tmp_path / "logs")},
    )

    assert updated.socket_path == tmp_path / "b.sock"
    assert updated.debug is True
    assert updated.log_dir == tmp_path / "logs"
    assert apply_env_overrides(base, {}) is base


def test_resolve_config_path(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("WAYDO_CONFIG", str(tmp_path / "env.json"))
    assert resolve_config_path("~/explicit.json").name == "explicit.json"
    assert resolve_config_path() == tmp_path / "env.json"

    monkeypatch.delenv("WAYDO_CONFIG")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    assert resolve_config_path() == tmp_path / "cfg" / "waydo" / "settings.json"
