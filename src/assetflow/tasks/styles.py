"""
Style-sheet compilation: SCSS entries to prefixed and minified CSS.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from ..render import StyleCompileError
from ..util import write_text_file
from .base import Task, TaskReport


class StylesTask(Task):
    name = "styles"
    description = "Compile SCSS entry files to css/<name>.css and css/<name>.min.css."
    start_message = "Compiling SCSS..."
    done_message = "SCSS compiled"

    def inputs(self) -> List[Path]:
        """Top-level entry files; underscore-prefixed partials are only imported."""
        scss_dir = self.layout.scss_src
        if not scss_dir.is_dir():
            return []
        return sorted(
            path
            for path in scss_dir.iterdir()
            if path.is_file() and path.suffix.lower() == ".scss" and not path.name.startswith("_")
        )

    def execute(self, report: TaskReport) -> None:
        styles = self.config.styles
        entries = self.inputs()
        if not entries:
            self.logger.info("No SCSS entry files found under %s", self.layout.scss_src)
        for entry in entries:
            try:
                css = self.context.style_compiler.compile(entry)
                if styles.prefix:
                    css = self.context.prefixer.process(css)
                minified = self.context.css_minifier.minify(css) if styles.minify else None
                report.written.append(write_text_file(self.layout.css_out / f"{entry.stem}.css", css))
                if minified is not None:
                    minified_path = self.layout.css_out / f"{entry.stem}.min.css"
                    report.written.append(write_text_file(minified_path, minified))
            except (StyleCompileError, OSError, ValueError) as exc:
                self.record_failure(report, entry, exc)
