"""
Task graph: named nodes composed with `series` and `parallel`.

A series runs its children one after another; a parallel group starts all
children at once and completes when every child has finished. A group never
abandons running children: when one fails, the others are still awaited and
the first failure is raised afterwards.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Set, Tuple, Union

from ..errors import AssetflowError, TaskFailedError
from ..tasks import TaskReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskNode:
    name: str
    action: Callable[[], Optional[TaskReport]]
    description: str = ""


@dataclass(frozen=True)
class Series:
    children: Tuple["Node", ...]


@dataclass(frozen=True)
class Parallel:
    children: Tuple["Node", ...]


Node = Union[TaskNode, Series, Parallel]


def series(*nodes: Node) -> Series:
    return Series(tuple(nodes))


def parallel(*nodes: Node) -> Parallel:
    return Parallel(tuple(nodes))


def iter_tasks(node: Node) -> Iterator[TaskNode]:
    """Leaf tasks in declaration order."""
    if isinstance(node, TaskNode):
        yield node
        return
    for child in node.children:
        yield from iter_tasks(child)


def ordering(node: Node) -> Set[Tuple[str, str]]:
    """
    Pairs (a, b) where task a is guaranteed to finish before task b starts.
    """
    if isinstance(node, TaskNode):
        return set()
    pairs: Set[Tuple[str, str]] = set()
    for child in node.children:
        pairs |= ordering(child)
    if isinstance(node, Series):
        for index, earlier in enumerate(node.children):
            earlier_names = [task.name for task in iter_tasks(earlier)]
            for later in node.children[index + 1:]:
                for task in iter_tasks(later):
                    pairs.update((name, task.name) for name in earlier_names)
    return pairs


def precedes(node: Node, first: str, second: str) -> bool:
    return (first, second) in ordering(node)


def validate(node: Node) -> None:
    """
    Reject graphs that name a task twice.

    Raises:
        AssetflowError: On duplicate task names.
    """
    seen: Set[str] = set()
    for task in iter_tasks(node):
        if task.name in seen:
            raise AssetflowError(f"Task '{task.name}' appears more than once in the graph")
        seen.add(task.name)


class GraphRunner:
    """Execute a task graph, returning the reports of the leaf tasks."""

    def __init__(self, *, workers: int = 8) -> None:
        self.workers = workers

    def run(self, node: Node) -> List[TaskReport]:
        validate(node)
        return self._run(node)

    def _run(self, node: Node) -> List[TaskReport]:
        if isinstance(node, TaskNode):
            return self._run_task(node)
        if isinstance(node, Series):
            reports: List[TaskReport] = []
            for child in node.children:
                reports.extend(self._run(child))
            return reports
        return self._run_parallel(node)

    def _run_task(self, node: TaskNode) -> List[TaskReport]:
        logger.debug("Starting '%s'", node.name)
        try:
            report = node.action()
        except TaskFailedError:
            raise
        except Exception as exc:
            raise TaskFailedError(node.name, exc) from exc
        logger.debug("Finished '%s'", node.name)
        return [report] if report is not None else []

    def _run_parallel(self, node: Parallel) -> List[TaskReport]:
        if not node.children:
            return []
        workers = max(1, min(self.workers, len(node.children)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="assetflow") as pool:
            futures = [pool.submit(self._run, child) for child in node.children]
            reports: List[TaskReport] = []
            failure: Optional[BaseException] = None
            for future in futures:
                try:
                    reports.extend(future.result())
                except TaskFailedError as exc:
                    logger.error("%s", exc)
                    failure = failure or exc
        if failure is not None:
            raise failure
        return reports
