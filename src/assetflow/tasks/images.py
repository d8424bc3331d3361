"""
Incremental image copy.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from ..util import copy_file, file_digest, is_newer, iter_files
from .base import Task, TaskReport


class ImagesTask(Task):
    name = "img"
    description = "Copy images that changed since the last build."
    start_message = "Copying images..."
    done_message = "Images copied"

    def inputs(self) -> List[Path]:
        return list(iter_files(self.layout.images_src, suffixes=self.config.images.extensions))

    def destination_for(self, source: Path) -> Path:
        return self.layout.images_out / source.relative_to(self.layout.images_src)

    def needs_copy(self, source: Path, destination: Path) -> bool:
        """
        mtime mode copies when the source is newer; hash mode when content differs.
        A missing destination is always copied.
        """
        if not destination.exists():
            return True
        if self.config.images.change_detection == "hash":
            return file_digest(source) != file_digest(destination)
        return is_newer(source, destination)

    def execute(self, report: TaskReport) -> None:
        for source in self.inputs():
            destination = self.destination_for(source)
            try:
                if not self.needs_copy(source, destination):
                    report.skipped.append(source)
                    continue
                report.written.append(copy_file(source, destination))
            except OSError as exc:
                self.record_failure(report, source, exc)
        if report.skipped:
            self.logger.debug("%d unchanged image(s) skipped", len(report.skipped))
