"""Turns menu actions into compositor commands or synthetic key presses.

Commands prefixed with ``key-`` are keyboard chords sent through ``ydotool``;
everything else is forwarded to ``niri msg action``. Dispatch is best-effort:
executor failures are logged and never reach the navigator.
"""
from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from waydo.menu_tree import Action

_LOGGER = logging.getLogger("waydo.dispatch")

KEY_PREFIX = "key-"
DEFERRED_PREFIXES: Tuple[str, ...] = ("screenshot",)
DEFAULT_DEFERRED_DELAY_MS = 80
DEFAULT_CHORD_DELAY_MS = 40
DEFAULT_COMMAND_TIMEOUT = 5.0

AfterFn = Callable[[int, Callable[[], None]], object]
Chord = Tuple[Tuple[int, ...], int]

# Linux evdev key codes (input-event-codes.h).
KEY_CODES: Dict[str, int] = {
    "ctrl": 29,
    "shift": 42,
    "alt": 56,
    "meta": 125,
    "super": 125,
    "1": 2,
    "2": 3,
    "3": 4,
    "4": 5,
    "5": 6,
    "6": 7,
    "7": 8,
    "8": 9,
    "9": 10,
    "0": 11,
    "a": 30,
    "b": 48,
    "c": 46,
    "d": 32,
    "e": 18,
    "f": 33,
    "g": 34,
    "h": 35,
    "i": 23,
    "j": 36,
    "k": 37,
    "l": 38,
    "m": 50,
    "n": 49,
    "o": 24,
    "p": 25,
    "q": 16,
    "r": 19,
    "s": 31,
    "t": 20,
    "u": 22,
    "v": 47,
    "w": 17,
    "x": 45,
    "y": 21,
    "z": 44,
    "minus": 12,
    "equal": 13,
    "plus": 13,
    "delete": 14,
    "backspace": 14,
    "tab": 15,
    "enter": 28,
    "esc": 1,
    "space": 57,
    "pageup": 104,
    "pagedown": 109,
    "home": 102,
    "end": 107,
    "up": 103,
    "down": 108,
    "left": 105,
    "right": 106,
}


def _immediate_after(_delay_ms: int, callback: Callable[[], None]) -> object:
    callback()
    return None


def key_code(token: str) -> Optional[int]:
    return KEY_CODES.get(token.strip().lower())


def parse_chord(text: str) -> Optional[Chord]:
    """Parse ``"ctrl-shift-z"`` into modifier codes and a main key code.

    Returns None when any token is unknown so the whole chord is skipped.
    """
    parts = [part for part in text.strip().split("-")]
    if not parts or not parts[-1]:
        return None
    main_code = key_code(parts[-1])
    if main_code is None:
        return None
    modifiers: List[int] = []
    for token in parts[:-1]:
        code = key_code(token)
        if code is None:
            return None
        modifiers.append(code)
    return tuple(modifiers), main_code


def parse_key_sequence(sequence: str) -> List[Optional[Chord]]:
    return [parse_chord(chunk) for chunk in sequence.split()]


def is_deferred_command(command: str) -> bool:
    return command.strip().startswith(DEFERRED_PREFIXES)


def run_command(argv: Sequence[str], *, timeout: float = DEFAULT_COMMAND_TIMEOUT) -> bool:
    """Run an external command once, logging failures instead of raising."""
    try:
        result = subprocess.run(
            list(argv),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError:
        _LOGGER.warning("Command not found: %s", argv[0] if argv else "<empty>")
        return False
    except subprocess.TimeoutExpired:
        _LOGGER.warning("Command timed out after %.1fs: %s", timeout, " ".join(argv))
        return False
    except (OSError, subprocess.SubprocessError) as exc:
        _LOGGER.warning("Failed to run %s: %s", " ".join(argv), exc)
        return False
    if result.returncode != 0:
        stderr = (result.stderr or b"").decode("utf-8", errors="replace").strip()
        _LOGGER.debug("Command exited with %s: %s %s", result.returncode, " ".join(argv), stderr)
        return False
    return True


class CompositorExecutor:
    """Forwards tokenised actions to the compositor control CLI."""

    def __init__(self, binary: str = "niri", *, timeout: float = DEFAULT_COMMAND_TIMEOUT) -> None:
        self._binary = binary
        self._timeout = timeout

    def build_argv(self, tokens: Sequence[str]) -> List[str]:
        return [self._binary, "msg", "action", *tokens]

    def execute(self, tokens: Sequence[str]) -> None:
        if not tokens:
            return
        run_command(self.build_argv(tokens), timeout=self._timeout)


class KeyboardExecutor:
    """Sends key chords through ydotool as raw evdev press/release events."""

    def __init__(self, binary: str = "ydotool", *, timeout: float = DEFAULT_COMMAND_TIMEOUT) -> None:
        self._binary = binary
        self._timeout = timeout

    def build_argv(self, modifier_codes: Sequence[int], main_code: int) -> List[str]:
        args = [self._binary, "key"]
        args.extend(f"{code}:1" for code in modifier_codes)
        args.append(f"{main_code}:1")
        args.append(f"{main_code}:0")
        args.extend(f"{code}:0" for code in reversed(modifier_codes))
        return args

    def press_chord(self, modifier_codes: Sequence[int], main_code: int) -> None:
        run_command(self.build_argv(modifier_codes, main_code), timeout=self._timeout)


def executables_available(*binaries: str) -> Dict[str, bool]:
    return {name: shutil.which(name) is not None for name in binaries}


class CommandDispatcher:
    """Maps action command strings onto the two executors."""

    def __init__(
        self,
        *,
        compositor: Optional[CompositorExecutor] = None,
        keyboard: Optional[KeyboardExecutor] = None,
        after: Optional[AfterFn] = None,
        deferred_delay_ms: int = DEFAULT_DEFERRED_DELAY_MS,
        chord_delay_ms: int = DEFAULT_CHORD_DELAY_MS,
    ) -> None:
        self._compositor = compositor or CompositorExecutor()
        self._keyboard = keyboard or KeyboardExecutor()
        self._after = after or _immediate_after
        self._deferred_delay_ms = max(0, int(deferred_delay_ms))
        self._chord_delay_ms = max(0, int(chord_delay_ms))

    def dispatch(self, action: Action) -> None:
        command = action.command.strip()
        if not command:
            _LOGGER.debug("Ignoring empty command")
            return
        if is_deferred_command(command):
            _LOGGER.debug("Deferring '%s' by %dms", command, self._deferred_delay_ms)
            self._after(self._deferred_delay_ms, lambda: self._run(command))
            return
        self._run(command)

    __call__ = dispatch

    def _run(self, command: str) -> None:
        try:
            if command.startswith(KEY_PREFIX):
                self._send_keys(command[len(KEY_PREFIX):])
            else:
                self._compositor.execute(command.split())
        except Exception as exc:  # pragma: no cover - executors already log their own failures
            _LOGGER.warning("Dispatch of '%s' failed: %s", command, exc)

    def _send_keys(self, sequence: str) -> None:
        chords = parse_key_sequence(sequence)
        delay = 0
        for chunk, chord in zip(sequence.split(), chords):
            if chord is None:
                _LOGGER.debug("Skipping unknown key chord '%s'", chunk)
                continue
            modifiers, main_code = chord
            if delay == 0:
                self._keyboard.press_chord(modifiers, main_code)
            else:
                self._after(delay, lambda m=modifiers, k=main_code: self._keyboard.press_chord(m, k))
            delay += self._chord_delay_ms
