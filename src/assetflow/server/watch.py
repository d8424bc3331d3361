"""
Watch loop: source-subtree changes re-run the bound tasks, then reload.

Each subtree gets its own watchdog handler with a debounce timer and
single-flight execution: while a run is active, further events collapse into
one pending follow-up run.
"""

from __future__ import annotations

import enum
import fnmatch
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..context import ReloadNotifier
from ..errors import AssetflowError
from ..tasks import TaskReport

if TYPE_CHECKING:
    from ..pipeline.graph import GraphRunner, Node

logger = logging.getLogger(__name__)

RELEVANT_EVENTS = {"created", "modified", "deleted", "moved"}


class WatchState(enum.Enum):
    IDLE = "idle"
    CHANGE_DETECTED = "change-detected"
    RUNNING = "running-bound-tasks"
    RELOADING = "signal-reload"


@dataclass(frozen=True)
class WatchBinding:
    """
    A watched source subtree and the graph run when it changes.

    Attributes:
        subtree: Name of the source subtree (html, images, scss, js).
        path: Directory watched recursively.
        action: Task graph run on change, before the reload signal.
    """
    subtree: str
    path: Path
    action: Node


class SubtreeHandler(FileSystemEventHandler):
    def __init__(
        self,
        binding: WatchBinding,
        runner: GraphRunner,
        notifier: ReloadNotifier,
        *,
        debounce_seconds: float = 0.2,
        ignore_patterns: Sequence[str] = (),
    ) -> None:
        super().__init__()
        self.binding = binding
        self.runner = runner
        self.notifier = notifier
        self.debounce_seconds = debounce_seconds
        self.ignore_patterns = list(ignore_patterns)
        self.state = WatchState.IDLE
        self.run_count = 0
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._timer: Optional[threading.Timer] = None
        self._running = False
        self._pending = False
        self._closed = False

    def ignored(self, path: str) -> bool:
        name = Path(path).name
        return any(fnmatch.fnmatch(name, pattern) for pattern in self.ignore_patterns)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in RELEVANT_EVENTS:
            return
        paths = [event.src_path, getattr(event, "dest_path", "") or ""]
        if all(not path or self.ignored(str(path)) for path in paths):
            return
        logger.debug("%s: %s %s", self.binding.subtree, event.event_type, event.src_path)
        self.trigger()

    def trigger(self) -> None:
        """Register a change; the bound tasks run once the debounce window passes."""
        with self._lock:
            if self._closed:
                return
            if self._timer is not None:
                self._timer.cancel()
            if not self._running:
                self.state = WatchState.CHANGE_DETECTED
            self._timer = threading.Timer(self.debounce_seconds, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
            if self._closed:
                return
            if self._running:
                self._pending = True
                return
            self._running = True
        self._run_until_settled()

    def _run_until_settled(self) -> None:
        while True:
            with self._lock:
                self.state = WatchState.RUNNING
                self.run_count += 1
            try:
                reports = self._run_bound_tasks()
                with self._lock:
                    self.state = WatchState.RELOADING
                written = [str(path) for report in reports for path in report.written]
                self.notifier.reload(written)
            except Exception:
                logger.exception("%s: rebuild failed", self.binding.subtree)
            with self._lock:
                if self._pending and not self._closed:
                    self._pending = False
                    continue
                self._pending = False
                self._running = False
                self.state = WatchState.CHANGE_DETECTED if self._timer is not None else WatchState.IDLE
                self._idle.notify_all()
                return

    def _run_bound_tasks(self) -> List[TaskReport]:
        try:
            reports = self.runner.run(self.binding.action)
        except AssetflowError as exc:
            logger.error("%s: %s", self.binding.subtree, exc)
            return []
        for report in reports:
            for key, reason in report.failures.items():
                logger.warning("%s: %s failed for %s: %s", self.binding.subtree, report.task, key, reason)
        return reports

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no run is active or scheduled; False on timeout."""
        with self._idle:
            return self._idle.wait_for(
                lambda: not self._running and self._timer is None and not self._pending,
                timeout=timeout,
            )

    def close(self) -> None:
        with self._lock:
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._idle.notify_all()


class WatchLoop:
    """One recursive watchdog watch per source subtree."""

    def __init__(
        self,
        bindings: Sequence[WatchBinding],
        runner: GraphRunner,
        notifier: ReloadNotifier,
        *,
        debounce_ms: int = 200,
        ignore_patterns: Sequence[str] = (),
    ) -> None:
        self.bindings = list(bindings)
        self.handlers: Dict[str, SubtreeHandler] = {
            binding.subtree: SubtreeHandler(
                binding,
                runner,
                notifier,
                debounce_seconds=debounce_ms / 1000.0,
                ignore_patterns=ignore_patterns,
            )
            for binding in self.bindings
        }
        self._observer: Optional[Observer] = None

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = Observer()
        for binding in self.bindings:
            if not binding.path.is_dir():
                logger.warning("Not watching %s: %s does not exist", binding.subtree, binding.path)
                continue
            observer.schedule(self.handlers[binding.subtree], str(binding.path), recursive=True)
            logger.info("Watching %s for changes", binding.path)
        observer.daemon = True
        observer.start()
        self._observer = observer

    def stop(self) -> None:
        for handler in self.handlers.values():
            handler.close()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
        logger.info("Stopped watching files")
