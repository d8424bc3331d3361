"""
Pipeline executor: composes tasks into the `build` and `dev` workflows.
"""

from __future__ import annotations

import logging
import threading
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Type

from ..context import BuildContext, NullNotifier
from ..errors import AssetflowError
from ..server import DevServer, WatchBinding, WatchLoop
from ..tasks import (
    COMPILER_TASKS,
    CleanTask,
    ImagesTask,
    MarkupTask,
    ScriptBundleTask,
    ScriptsTask,
    StylesTask,
    Task,
    TaskReport,
    VendorTask,
)
from ..util import directory_lock
from .graph import GraphRunner, Node, TaskNode, parallel, series

logger = logging.getLogger(__name__)

# workflows that delete or populate the whole build tree take the directory lock
LOCKED_WORKFLOWS = {"build", "clean", "dev"}


class DevSession:
    """
    Long-running components started by `serve`/`watch`.

    `wait` blocks the caller until `stop` is called (e.g. from Ctrl+C handling).
    """

    def __init__(self) -> None:
        self.server: Optional[DevServer] = None
        self.watch_loop: Optional[WatchLoop] = None
        self._stopped = threading.Event()
        self._resources = ExitStack()

    @property
    def active(self) -> bool:
        return self.server is not None or self.watch_loop is not None

    def hold(self, context_manager) -> None:
        """Keep a context manager entered for the session lifetime."""
        self._resources.enter_context(context_manager)

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._stopped.wait(timeout)

    def stop(self) -> None:
        if self._stopped.is_set():
            return
        if self.watch_loop is not None:
            self.watch_loop.stop()
        if self.server is not None:
            self.server.stop()
        self._resources.close()
        self._stopped.set()


@dataclass
class RunResult:
    workflow: str
    reports: List[TaskReport] = field(default_factory=list)
    session: Optional[DevSession] = None

    @property
    def failures(self) -> Dict[str, str]:
        merged: Dict[str, str] = {}
        for report in self.reports:
            merged.update(report.failures)
        return merged


@dataclass(frozen=True)
class RegistryEntry:
    name: str
    description: str
    graph: Callable[[], Node]


class Orchestrator:
    """
    Builds task graphs over a BuildContext and runs them.

    The server, when given, is also the context's reload notifier; tasks and
    the watch loop only ever see the notifier handle.
    """

    def __init__(self, context: BuildContext, *, server: Optional[DevServer] = None) -> None:
        self.context = context
        self.server = server
        self.runner = GraphRunner(workers=context.config.workers)
        self.session = DevSession()
        self.registry: Dict[str, RegistryEntry] = {}
        self._register_defaults()

    def node(self, task_cls: Type[Task]) -> TaskNode:
        def _action() -> TaskReport:
            return task_cls(self.context).run()

        return TaskNode(task_cls.name, _action, task_cls.description)

    def compile_group(self) -> Node:
        return parallel(*(self.node(task_cls) for task_cls in COMPILER_TASKS))

    def build_graph(self) -> Node:
        return series(self.node(CleanTask), self.compile_group())

    def dev_graph(self) -> Node:
        return series(self.compile_group(), parallel(self.serve_node(), self.watch_node()))

    def watch_bindings(self) -> List[WatchBinding]:
        actions = {
            "html": self.node(MarkupTask),
            "images": self.node(ImagesTask),
            "scss": self.node(StylesTask),
            "js": parallel(self.node(ScriptsTask), self.node(ScriptBundleTask)),
        }
        return [WatchBinding(subtree, self.context.layout.source_subtree(subtree), action) for subtree, action in actions.items()]

    def serve_node(self) -> TaskNode:
        if self.server is None:
            self.server = DevServer(self.context.layout.build_root, self.context.config.server)
        self.context.notifier = self.server
        server = self.server

        def _serve() -> None:
            logger.info("Starting development server...")
            server.start()
            self.session.server = server

        return TaskNode("serve", _serve, "Serve the build directory with live reload.")

    def watch_node(self) -> TaskNode:
        def _watch() -> None:
            logger.info("Watching files for changes...")
            watch = self.context.config.watch
            loop = WatchLoop(
                self.watch_bindings(),
                self.runner,
                self.context.notifier,
                debounce_ms=watch.debounce_ms,
                ignore_patterns=watch.ignore_patterns,
            )
            loop.start()
            self.session.watch_loop = loop

        return TaskNode("watch", _watch, "Rebuild on source changes and reload the browser.")

    def reload_node(self) -> TaskNode:
        def _reload() -> None:
            if isinstance(self.context.notifier, NullNotifier):
                logger.warning("No development server is running in this process; nothing to reload")
                return
            self.context.notifier.reload()

        return TaskNode("reload", _reload, "Push a full reload to connected browsers.")

    def _register_defaults(self) -> None:
        for task_cls in (CleanTask, VendorTask, MarkupTask, ImagesTask, StylesTask, ScriptsTask, ScriptBundleTask):
            self.register(task_cls.name, task_cls.description, lambda cls=task_cls: self.node(cls))
        self.register("serve", "Serve the build directory with live reload.", self.serve_node)
        self.register("watch", "Rebuild on source changes and reload the browser.", self.watch_node)
        self.register("reload", "Push a full reload to connected browsers.", self.reload_node)
        self.register("build", "Clean, then compile every asset class in parallel.", self.build_graph)
        self.register("dev", "Compile everything, then serve and watch.", self.dev_graph)
        self.register("default", "Alias for dev.", self.dev_graph)

    def register(self, name: str, description: str, graph: Callable[[], Node]) -> None:
        self.registry[name] = RegistryEntry(name, description, graph)

    def run(self, name: str) -> RunResult:
        """
        Run a registered task or workflow by name.

        Raises:
            AssetflowError: For unknown names or a locked build directory.
            TaskFailedError: When a task raises instead of reporting.
        """
        entry = self.registry.get(name)
        if entry is None:
            known = ", ".join(sorted(self.registry))
            raise AssetflowError(f"Unknown task '{name}' (known: {known})")
        workflow = "dev" if name == "default" else name
        graph = entry.graph()
        build_root = self.context.layout.build_root

        if workflow == "dev":
            self.session.hold(directory_lock(build_root, timeout=0))
            try:
                reports = self.runner.run(graph)
            except BaseException:
                self.session.stop()
                raise
        elif workflow in LOCKED_WORKFLOWS:
            with directory_lock(build_root, timeout=0):
                reports = self.runner.run(graph)
        else:
            reports = self.runner.run(graph)

        session = self.session if self.session.active else None
        return RunResult(workflow=workflow, reports=reports, session=session)

    def build(self) -> RunResult:
        return self.run("build")

    def dev(self) -> RunResult:
        return self.run("dev")
