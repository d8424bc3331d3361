"""
Script compilation: standalone files and the ordered layout+main bundle.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from ..render import ScriptCompileError
from ..util import iter_files, write_text_file
from .base import Task, TaskReport


class ScriptsTask(Task):
    name = "js"
    description = "Transpile and minify standalone scripts (bundle members excluded)."
    start_message = "Processing JavaScript files..."
    done_message = "JavaScript files processed"

    def inputs(self) -> List[Path]:
        reserved = {Path(name).as_posix() for name in self.config.scripts.bundle}
        js_dir = self.layout.js_src
        return [
            path
            for path in iter_files(js_dir, suffixes=["js"])
            if path.relative_to(js_dir).as_posix() not in reserved
        ]

    def execute(self, report: TaskReport) -> None:
        for source in self.inputs():
            relative = source.relative_to(self.layout.js_src)
            try:
                code = source.read_text(encoding="utf-8")
                code = self.context.transpiler.transpile(code, filename=relative.as_posix())
                code = self.context.js_minifier.minify(code)
                report.written.append(write_text_file(self.layout.js_out / relative, code))
            except (ScriptCompileError, OSError, UnicodeDecodeError, ValueError) as exc:
                self.record_failure(report, source, exc)


class ScriptBundleTask(Task):
    name = "jsBundle"
    description = "Concatenate layout.js then main.js into combined.js and combined.min.js."
    start_message = "Bundling layout + main JavaScript..."
    done_message = "JavaScript bundled"

    def inputs(self) -> List[Path]:
        return [self.layout.js_src / name for name in self.config.scripts.bundle]

    def execute(self, report: TaskReport) -> None:
        scripts = self.config.scripts
        parts: List[str] = []
        for source in self.inputs():
            try:
                parts.append(source.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError) as exc:
                self.record_failure(report, source, exc)
        if report.failures:
            self.logger.error("Bundle %s not written: missing or unreadable members", scripts.bundle_name)
            return

        combined = scripts.bundle_separator.join(parts)
        bundle_path = self.layout.js_out / f"{scripts.bundle_name}.js"
        try:
            report.written.append(write_text_file(bundle_path, combined))
        except OSError as exc:
            self.record_failure(report, bundle_path, exc)
            return

        minified_path = self.layout.js_out / f"{scripts.bundle_name}.min.js"
        try:
            minified = self.context.transpiler.transpile(combined, filename=bundle_path.name)
            minified = self.context.js_minifier.minify(minified)
            report.written.append(write_text_file(minified_path, minified))
        except (ScriptCompileError, ValueError) as exc:
            self.record_failure(report, bundle_path, exc)
        except OSError as exc:
            self.record_failure(report, minified_path, exc)
