"""
Static development server with live reload, built on livereload/tornado.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from typing import List, Optional, Sequence

from livereload import Server
from livereload.handlers import LiveReloadHandler
from tornado.ioloop import IOLoop

from ..config import ServerConfig
from ..errors import AssetflowError
from ..util import ensure_directory

logger = logging.getLogger(__name__)

FULL_RELOAD = "*"
STARTUP_TIMEOUT_SECONDS = 10.0


def reload_targets(paths: Sequence[str | Path], build_root: Path) -> List[str]:
    """
    Translate written files into livereload paths.

    Only stylesheets can be refreshed in place; any other change (or no
    information at all) asks for a full page reload.
    """
    if not paths:
        return [FULL_RELOAD]
    root = Path(build_root).resolve()
    relative: List[str] = []
    for path in paths:
        candidate = Path(path)
        try:
            candidate = candidate.resolve().relative_to(root)
        except ValueError:
            pass
        relative.append(candidate.as_posix())
    if all(item.lower().endswith(".css") for item in relative):
        return sorted(set(relative))
    return [FULL_RELOAD]


class DevServer:
    """
    Serve the build directory and push reloads to connected browsers.

    `start` returns once the listener is up; the IOLoop keeps running on a
    daemon thread until `stop` is called or the process exits.
    """

    def __init__(self, root: Path, config: ServerConfig) -> None:
        self.root = Path(root)
        self.config = config
        self._server: Optional[Server] = None
        self._ioloop: Optional[IOLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._error: Optional[BaseException] = None

    @property
    def url(self) -> str:
        return f"http://{self.config.host}:{self.config.port}"

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and self._error is None

    def start(self) -> None:
        if self.running:
            return
        ensure_directory(self.root)
        self._ready.clear()
        self._error = None
        self._thread = threading.Thread(target=self._serve, name="assetflow-devserver", daemon=True)
        self._thread.start()
        if not self._ready.wait(STARTUP_TIMEOUT_SECONDS):
            raise AssetflowError(f"Development server did not start within {STARTUP_TIMEOUT_SECONDS:.0f}s")
        if self._error is not None:
            raise AssetflowError(f"Development server failed to start: {self._error}") from self._error
        logger.info("Server started at %s (serving %s)", self.url, self.root)

    def _serve(self) -> None:
        asyncio.set_event_loop(asyncio.new_event_loop())
        self._ioloop = IOLoop.current()
        self._ioloop.add_callback(self._ready.set)
        self._server = Server()
        try:
            self._server.serve(
                port=self.config.port,
                liveport=self.config.live_port,
                host=self.config.host,
                root=str(self.root),
                debug=False,
                open_url_delay=0.5 if self.config.open_browser else None,
                live_css=True,
                default_filename=self.config.index,
            )
        except Exception as exc:  # surfaced to start() through self._error
            logger.error("Development server stopped: %s", exc)
            self._error = exc
            self._ready.set()

    def reload(self, paths: Sequence[str | Path] = ()) -> None:
        """Push a reload for paths (style-only when every path is a stylesheet)."""
        if not self.running or self._ioloop is None:
            logger.warning("Reload requested but the development server is not running")
            return
        for target in reload_targets(paths, self.root):
            logger.debug("Pushing reload for %s", target)
            self._ioloop.add_callback(LiveReloadHandler.reload_waiters, target)

    def stop(self) -> None:
        if self._ioloop is not None:
            self._ioloop.add_callback(self._ioloop.stop)
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._thread = None
        logger.info("Server stopped")
