"""Unix-socket toggle endpoint and its one-shot client."""
from __future__ import annotations

import asyncio
import logging
import os
import queue
import socket
import stat
import threading
from pathlib import Path
from typing import List, Optional

_LOGGER = logging.getLogger("waydo.toggle")

TOGGLE_TOKEN = "TOGGLE"
_MAX_LINE = 256


class ToggleEndpointError(RuntimeError):
    """Raised when the toggle socket cannot be bound."""


def remove_stale_socket(path: Path) -> bool:
    """Remove a socket file left behind by a crashed daemon. Returns True if removed."""
    try:
        mode = path.lstat().st_mode
    except FileNotFoundError:
        return False
    if not stat.S_ISSOCK(mode):
        raise ToggleEndpointError(f"{path} exists and is not a socket; refusing to remove it")
    path.unlink()
    _LOGGER.debug("Removed stale toggle socket %s", path)
    return True


class ToggleServer:
    """Runs a background Unix stream server that queues TOGGLE requests.

    The server thread never touches navigation state; the overlay drains
    :meth:`drain` from its own event loop.
    """

    def __init__(self, socket_path: Path, *, start_timeout: float = 5.0) -> None:
        self._socket_path = socket_path
        self._start_timeout = start_timeout
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._ready_event = threading.Event()
        self._stopped: Optional[asyncio.Event] = None
        self._startup_error: Optional[BaseException] = None
        self._queue: "queue.Queue[str]" = queue.Queue()

    @property
    def socket_path(self) -> Path:
        return self._socket_path

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def start(self) -> None:
        """Bind the endpoint on a background thread; raises ToggleEndpointError on failure."""
        if self.running:
            return
        self._stop_event.clear()
        self._ready_event.clear()
        self._startup_error = None
        self._thread = threading.Thread(target=self._thread_main, name="waydo-toggle", daemon=True)
        self._thread.start()
        if not self._ready_event.wait(timeout=self._start_timeout):
            self.stop()
            raise ToggleEndpointError(f"Toggle server did not start within {self._start_timeout:.1f}s")
        if self._startup_error is not None:
            error = self._startup_error
            self.stop()
            raise ToggleEndpointError(f"Failed to bind {self._socket_path}: {error}") from error

    def stop(self) -> None:
        self._stop_event.set()
        loop = self._loop
        stopped = self._stopped
        if loop is not None and loop.is_running() and stopped is not None:
            loop.call_soon_threadsafe(stopped.set)
        if self._thread:
            self._thread.join(timeout=5.0)
        self._thread = None
        self._loop = None
        self._stopped = None

    def drain(self) -> List[str]:
        """Return every request received since the last call, oldest first."""
        messages: List[str] = []
        while True:
            try:
                messages.append(self._queue.get_nowait())
            except queue.Empty:
                return messages

    # Background thread ----------------------------------------------------

    def _thread_main(self) -> None:
        loop = asyncio.new_event_loop()
        self._loop = loop
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self._serve())
        except Exception as exc:
            self._startup_error = exc
        finally:
            self._ready_event.set()
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    async def _serve(self) -> None:
        self._stopped = asyncio.Event()
        remove_stale_socket(self._socket_path)
        self._socket_path.parent.mkdir(parents=True, exist_ok=True)
        server = await asyncio.start_unix_server(self._handle_client, path=str(self._socket_path))
        try:
            os.chmod(self._socket_path, 0o600)
        except OSError as exc:
            _LOGGER.debug("Could not restrict permissions on %s: %s", self._socket_path, exc)
        _LOGGER.info("Toggle server listening on %s", self._socket_path)
        self._ready_event.set()
        async with server:
            if not self._stop_event.is_set():
                await self._stopped.wait()
        try:
            self._socket_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            _LOGGER.debug("Failed to remove %s on shutdown: %s", self._socket_path, exc)
        _LOGGER.info("Toggle server stopped")

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            line = await asyncio.wait_for(reader.readline(), timeout=2.0)
        except (asyncio.TimeoutError, ConnectionError, OSError, ValueError) as exc:
            _LOGGER.debug("Dropped toggle client: %s", exc)
            line = b""
        finally:
            try:
                writer.close()
                await writer.wait_closed()
            except OSError:
                pass
        token = line[:_MAX_LINE].decode("utf-8", errors="replace").strip()
        if token == TOGGLE_TOKEN:
            self._queue.put_nowait(TOGGLE_TOKEN)
            _LOGGER.debug("Queued toggle request")
        elif token:
            _LOGGER.debug("Ignoring unknown toggle message %r", token)


def send_toggle(socket_path: Path, *, timeout: float = 2.0) -> None:
    """Connect to a running daemon and ask it to flip visibility. Raises OSError on failure."""
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
        sock.settimeout(timeout)
        sock.connect(str(socket_path))
        sock.sendall(f"{TOGGLE_TOKEN}\n".encode("utf-8"))
