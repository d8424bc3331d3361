"""
HTML compilation: include resolution from the html subtree into the build root.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from ..errors import IncludeError
from ..render import IncludeResolver
from ..util import iter_files, write_text_file
from .base import Task, TaskReport


class MarkupTask(Task):
    name = "html"
    description = "Resolve includes in HTML pages (partials are never emitted)."
    start_message = "Processing HTML files..."
    done_message = "HTML files processed"

    def inputs(self) -> List[Path]:
        """Every page under the html subtree outside partials directories."""
        return list(
            iter_files(
                self.layout.html_src,
                exclude_dirs=[self.config.markup.partials_dir],
                suffixes=["html"],
            )
        )

    def destination_for(self, source: Path) -> Path:
        return self.layout.build_root / source.relative_to(self.layout.html_src)

    def execute(self, report: TaskReport) -> None:
        resolver = IncludeResolver(
            self.layout.html_src,
            prefix=self.config.markup.include_prefix,
            max_depth=self.config.markup.max_depth,
        )
        sources = self.inputs()
        if not sources:
            self.logger.info("No HTML pages found under %s", self.layout.html_src)
        for source in sources:
            try:
                rendered = resolver.render(source)
                report.written.append(write_text_file(self.destination_for(source), rendered))
            except (IncludeError, OSError, UnicodeDecodeError) as exc:
                self.record_failure(report, source, exc)
