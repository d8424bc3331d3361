"""
Base class and report type shared by every pipeline task.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Dict, Iterable, List, Optional

from ..context import BuildContext
from ..util import format_duration, monotonic


@dataclass
class TaskReport:
    """
    Stores what a task did.

    Attributes:
        task: Name of the task that produced the report.
        written: Files written to the build tree.
        skipped: Inputs that needed no work.
        removed: Paths deleted from the build tree.
        failures: Per-file (or per-package) errors keyed by path or name.
        duration: Wall time in seconds.
    """
    task: str
    written: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    removed: List[Path] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failures

    def merge(self, other: "TaskReport") -> None:
        self.written.extend(other.written)
        self.skipped.extend(other.skipped)
        self.removed.extend(other.removed)
        self.failures.update(other.failures)

    def summary_rows(self) -> Iterable[tuple[str, str]]:
        yield ("Task", self.task)
        yield ("Written", str(len(self.written)))
        yield ("Skipped", str(len(self.skipped)))
        yield ("Failures", str(len(self.failures)))
        yield ("Duration", format_duration(self.duration))


class Task(ABC):
    """
    A named unit of work over the build tree.

    Subclasses implement `execute`; `run` wraps it with timing and the
    start/finish log lines. Per-file problems belong in the report, not in
    exceptions.
    """

    name: ClassVar[str]
    description: ClassVar[str] = ""
    start_message: ClassVar[Optional[str]] = None
    done_message: ClassVar[Optional[str]] = None

    def __init__(self, context: BuildContext) -> None:
        self.context = context
        self.layout = context.layout
        self.config = context.config
        self.logger = logging.getLogger(f"assetflow.tasks.{self.name}")

    def run(self) -> TaskReport:
        if self.start_message:
            self.logger.info(self.start_message)
        started = monotonic()
        report = TaskReport(task=self.name)
        self.execute(report)
        report.duration = monotonic() - started
        if report.failures:
            self.logger.warning(
                "%s finished with %d failure(s) in %s",
                self.name,
                len(report.failures),
                format_duration(report.duration),
            )
        elif self.done_message:
            self.logger.info("%s (%s)", self.done_message, format_duration(report.duration))
        return report

    @abstractmethod
    def execute(self, report: TaskReport) -> None:
        """Do the work, recording outputs and failures on report."""

    def record_failure(self, report: TaskReport, key: Path | str, exc: BaseException | str) -> None:
        reason = str(exc).strip() or type(exc).__name__
        report.failures[str(key)] = reason
        self.logger.error("%s: %s", key, reason)
