"""
Removal of the build tree.
"""

from __future__ import annotations

from pathlib import Path

from ..errors import CleanError
from ..util import remove_tree
from ..util.filesystem import is_relative_to
from .base import Task, TaskReport


class CleanTask(Task):
    name = "clean"
    description = "Delete the build directory."
    start_message = "Cleaning build directory..."
    done_message = "Build directory cleaned"

    def execute(self, report: TaskReport) -> None:
        build_root = Path(self.layout.build_root).resolve()
        source_root = Path(self.layout.source_root).resolve()
        if is_relative_to(source_root, build_root):
            raise CleanError(f"Refusing to delete {build_root}: it contains the source tree {source_root}")
        if build_root == Path(build_root.anchor):
            raise CleanError(f"Refusing to delete filesystem root {build_root}")
        try:
            removed = remove_tree(build_root)
        except OSError as exc:
            raise CleanError(f"Unable to delete {build_root}: {exc}") from exc
        if removed:
            report.removed.append(build_root)
        else:
            self.logger.debug("%s does not exist; nothing to clean", build_root)
            report.skipped.append(build_root)
