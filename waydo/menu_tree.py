"""Static menu definitions and path lookups for the radial menu."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

_LOGGER = logging.getLogger("waydo.menu")

ROOT_LABEL = "Root"
SUBMENU_MARKER = " >"
_FLAG_TOKENS = {"true": True, "yes": True, "on": True, "1": True, "false": False, "no": False, "off": False, "0": False}


class MenuConfigError(ValueError):
    """Raised when a menu definition cannot form a valid tree."""


class EntryKind(Enum):
    ACTION = "action"
    SUBMENU = "submenu"


@dataclass(frozen=True)
class Action:
    command: str
    close_on_activate: bool = False


@dataclass(frozen=True)
class Entry:
    """One selectable slot on a ring.

    Action entries carry ``action``; submenu entries carry the arena index of
    the menu they open in ``submenu`` and may carry a ``default_action`` that
    fires when the ring slot is clicked.
    """

    label: str
    kind: EntryKind
    action: Optional[Action] = None
    submenu: Optional[int] = None
    default_action: Optional[Action] = None
    color: Optional[str] = None

    @classmethod
    def make_action(cls, label: str, command: str, close: bool = False, *, color: Optional[str] = None) -> "Entry":
        return cls(label=label, kind=EntryKind.ACTION, action=Action(command, close), color=color)

    @classmethod
    def make_submenu(
        cls,
        label: str,
        submenu: int,
        *,
        default_action: Optional[Action] = None,
        color: Optional[str] = None,
    ) -> "Entry":
        return cls(
            label=label,
            kind=EntryKind.SUBMENU,
            submenu=submenu,
            default_action=default_action,
            color=color,
        )

    @property
    def display_label(self) -> str:
        label = self.label
        while label.endswith(SUBMENU_MARKER):
            label = label[: -len(SUBMENU_MARKER)]
        return label


@dataclass(frozen=True)
class Menu:
    name: str
    entries: Tuple[Entry, ...]

    def __len__(self) -> int:
        return len(self.entries)


class MenuTree:
    """Arena of menus rooted at ``root``; submenu entries reference menus by index."""

    def __init__(self, menus: Sequence[Menu], root: int = 0) -> None:
        self._menus: Tuple[Menu, ...] = tuple(menus)
        if not 0 <= root < len(self._menus):
            raise MenuConfigError(f"Root menu index {root} is out of range")
        self._root = root
        self._validate()

    @property
    def root(self) -> Menu:
        return self._menus[self._root]

    @property
    def menus(self) -> Tuple[Menu, ...]:
        return self._menus

    def current_entries(self, path: Sequence[int]) -> Tuple[Entry, ...]:
        """Return the entries of the menu reached by following ``path`` from root.

        Walking stops at the last valid menu when an index is out of range or
        points at an action entry.
        """
        menu = self._walk(path)[-1]
        return menu.entries

    def breadcrumb(self, path: Sequence[int]) -> str:
        parts = [ROOT_LABEL]
        menu = self.root
        for idx in path[: len(self._menus)]:
            if idx < 0 or idx >= len(menu.entries):
                break
            entry = menu.entries[idx]
            parts.append(entry.display_label)
            if entry.kind is not EntryKind.SUBMENU or entry.submenu is None:
                break
            menu = self._menus[entry.submenu]
        return " > ".join(parts)

    def entry_at(self, path: Sequence[int], index: int) -> Optional[Entry]:
        entries = self.current_entries(path)
        if 0 <= index < len(entries):
            return entries[index]
        return None

    def _walk(self, path: Sequence[int]) -> List[Menu]:
        menu = self.root
        visited = [menu]
        # The arena is acyclic, so no valid path is longer than the menu count.
        for idx in path[: len(self._menus)]:
            if idx < 0 or idx >= len(menu.entries):
                break
            entry = menu.entries[idx]
            if entry.kind is EntryKind.ACTION or entry.submenu is None:
                break
            menu = self._menus[entry.submenu]
            visited.append(menu)
        return visited

    def _validate(self) -> None:
        for menu in self._menus:
            for entry in menu.entries:
                if entry.kind is EntryKind.SUBMENU:
                    if entry.submenu is None or not 0 <= entry.submenu < len(self._menus):
                        raise MenuConfigError(
                            f"Entry '{entry.label}' in menu '{menu.name}' references a missing submenu"
                        )
                elif entry.action is None:
                    raise MenuConfigError(f"Action entry '{entry.label}' in menu '{menu.name}' has no action")

        # 0 = unvisited, 1 = on the current path, 2 = finished
        marks = [0] * len(self._menus)

        def _visit(index: int, trail: Tuple[str, ...]) -> None:
            marks[index] = 1
            for entry in self._menus[index].entries:
                if entry.kind is not EntryKind.SUBMENU or entry.submenu is None:
                    continue
                target = entry.submenu
                if marks[target] == 1:
                    cycle = " -> ".join(trail + (self._menus[target].name,))
                    raise MenuConfigError(f"Menu cycle detected: {cycle}")
                if marks[target] == 0:
                    _visit(target, trail + (self._menus[target].name,))
            marks[index] = 2

        _visit(self._root, (self.root.name,))


def _build_tree(definitions: Mapping[str, Sequence[Mapping[str, Any]]], root_name: str) -> MenuTree:
    if root_name not in definitions:
        raise MenuConfigError(f"Root menu '{root_name}' is not defined")
    names = [root_name] + [name for name in definitions if name != root_name]
    index_of = {name: idx for idx, name in enumerate(names)}

    def _flag(raw: Any, fallback: bool) -> bool:
        if raw is None:
            return fallback
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, str) and raw.strip().lower() in _FLAG_TOKENS:
            return _FLAG_TOKENS[raw.strip().lower()]
        raise MenuConfigError(f"close_on_activate must be a boolean, got {raw!r}")

    def _action(raw: Any, *, default_close: bool) -> Optional[Action]:
        if raw is None:
            return None
        if isinstance(raw, str):
            return Action(raw, default_close)
        if isinstance(raw, Mapping):
            command = raw.get("command")
            if not isinstance(command, str) or not command.strip():
                raise MenuConfigError("Action definitions need a non-empty 'command'")
            return Action(command, _flag(raw.get("close_on_activate"), default_close))
        raise MenuConfigError(f"Unsupported action definition: {raw!r}")

    menus: List[Menu] = []
    for name in names:
        entries: List[Entry] = []
        for raw in definitions[name]:
            if not isinstance(raw, Mapping):
                raise MenuConfigError(f"Menu '{name}' contains a non-object entry")
            label = str(raw.get("label") or "").strip()
            if not label:
                raise MenuConfigError(f"Menu '{name}' contains an entry without a label")
            color = raw.get("color")
            color = str(color) if color is not None else None
            submenu_name = raw.get("submenu")
            if submenu_name is not None:
                if not isinstance(submenu_name, str):
                    raise MenuConfigError(f"Entry '{label}' has a non-string submenu reference")
                if submenu_name not in index_of:
                    raise MenuConfigError(f"Entry '{label}' references unknown menu '{submenu_name}'")
                entries.append(
                    Entry.make_submenu(
                        label,
                        index_of[submenu_name],
                        default_action=_action(raw.get("default_action"), default_close=False),
                        color=color,
                    )
                )
                continue
            action = _action(
                {"command": raw.get("command"), "close_on_activate": raw.get("close_on_activate")},
                default_close=False,
            )
            entries.append(Entry(label=label, kind=EntryKind.ACTION, action=action, color=color))
        menus.append(Menu(name, tuple(entries)))
    return MenuTree(menus, root=0)


def default_menu_tree() -> MenuTree:
    """Built-in menu layout used when no menu file is configured."""
    definitions: Dict[str, List[Dict[str, Any]]] = {
        "root": [
            {"label": "Action >", "submenu": "action"},
            {"label": "Workspace >", "submenu": "focus"},
            {"label": "Misc >", "submenu": "misc"},
            {"label": "Tools", "command": "key-ctrl-6", "close_on_activate": True},
            {"label": "Selector", "command": "key-ctrl-5", "close_on_activate": True},
            {"label": "Brush", "command": "key-ctrl-1", "close_on_activate": True},
            {"label": "App >", "submenu": "apps"},
        ],
        "apps": [
            {"label": "Neovide", "command": "spawn -- fish -c ~/.local/bin/neovide-focus", "close_on_activate": True},
            {"label": "Zen Browser", "command": "spawn -- flatpak run app.zen_browser.zen", "close_on_activate": True},
            {"label": "Files", "command": "spawn -- nautilus", "close_on_activate": True},
            {"label": "Zotero", "command": "spawn -- flatpak run org.zotero.Zotero", "close_on_activate": True},
            {"label": "Btop", "command": "spawn -- alacritty --title Btop -e btop", "close_on_activate": True},
        ],
        "action": [
            {"label": "Fullscreen", "command": "fullscreen-window"},
            {"label": "Maximize", "command": "maximize-window-to-edges"},
            {"label": "Toggle Float", "command": "toggle-window-floating"},
            {"label": "Close", "command": "close-window"},
            {"label": "Screenshot", "command": "screenshot -p false", "close_on_activate": True},
        ],
        "movement": [
            {"label": "Up", "command": "move-window-to-workspace-up"},
            {"label": "Right", "command": "swap-window-right"},
            {"label": "Down", "command": "move-window-to-workspace-down"},
            {"label": "Left", "command": "swap-window-left"},
        ],
        "focus": [
            {"label": "Up", "command": "focus-workspace-up"},
            {"label": "Switch", "command": "switch-focus-between-floating-and-tiling"},
            {"label": "Right", "command": "focus-column-right"},
            {"label": "Move >", "submenu": "movement"},
            {"label": "Down", "command": "focus-workspace-down"},
            {"label": "Move >", "submenu": "movement"},
            {"label": "Left", "command": "focus-column-left"},
            {"label": "Switch", "command": "switch-focus-between-floating-and-tiling"},
        ],
        "misc": [
            {"label": "Page Up", "command": "key-pageup"},
            {"label": "Undo", "command": "key-ctrl-z"},
            {"label": "Redo", "command": "key-ctrl-shift-z"},
            {"label": "Zoom Out", "command": "key-ctrl-minus"},
            {"label": "Page Down", "command": "key-pagedown"},
            {"label": "Zoom In", "command": "key-ctrl-plus"},
            {"label": "Delete", "command": "key-delete"},
            {"label": "Duplicate", "command": "key-ctrl-d"},
        ],
    }
    return _build_tree(definitions, "root")


def parse_menu_definition(data: Any) -> MenuTree:
    if not isinstance(data, Mapping):
        raise MenuConfigError("Menu file must contain a JSON object")
    menus = data.get("menus")
    if not isinstance(menus, Mapping) or not menus:
        raise MenuConfigError("Menu file needs a non-empty 'menus' object")
    for name, entries in menus.items():
        if not isinstance(entries, list):
            raise MenuConfigError(f"Menu '{name}' must be a list of entries")
    root_name = data.get("root", "root")
    return _build_tree(menus, str(root_name))


def load_menu_tree(path: Optional[Path]) -> MenuTree:
    """Load a JSON menu definition once at startup, falling back to the built-in tree."""
    if path is None:
        return default_menu_tree()
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        _LOGGER.debug("Menu file %s not found; using built-in menu", path)
        return default_menu_tree()
    except (OSError, UnicodeDecodeError) as exc:
        _LOGGER.warning("Failed to read menu file %s: %s; using built-in menu", path, exc)
        return default_menu_tree()
    try:
        tree = parse_menu_definition(json.loads(raw))
    except json.JSONDecodeError as exc:
        _LOGGER.warning("Menu file %s is not valid JSON: %s; using built-in menu", path, exc)
        return default_menu_tree()
    except MenuConfigError as exc:
        _LOGGER.warning("Menu file %s rejected: %s; using built-in menu", path, exc)
        return default_menu_tree()
    _LOGGER.info("Loaded menu definition from %s (%d menus)", path, len(tree.menus))
    return tree
