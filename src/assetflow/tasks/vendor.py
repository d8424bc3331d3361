"""
Third-party package copy from node_modules into the build plugins directory.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path, PurePosixPath
from typing import List, Set, Tuple

from ..config import VendorEntry
from ..util import copy_file, iter_files
from .base import Task, TaskReport

logger = logging.getLogger(__name__)

DIST_SEGMENT = "dist"

# files a package ships that are not part of its browser distribution
DISTRIBUTION_EXCLUDES = [
    "*.map",
    "src/*",
    "examples/*",
    "example/*",
    "demo/*",
    "spec/*",
    "docs/*",
    "tests/*",
    "test/*",
    "Gruntfile.js",
    "gulpfile.js",
    "package.json",
    "package-lock.json",
    "bower.json",
    "composer.json",
    "yarn.lock",
    "webpack.config.js",
    "README*",
    "LICENSE*",
    "CHANGELOG*",
    "*.yml",
    "*.md",
    "*.coffee",
    "*.ts",
    "*.scss",
    "*.less",
]


def read_dependencies(package_json: Path) -> List[str]:
    """
    Names listed under "dependencies" in a package.json, in file order.

    A missing manifest means no dependencies.
    """
    if not package_json.exists():
        return []
    data = json.loads(package_json.read_text(encoding="utf-8"))
    dependencies = data.get("dependencies") or {}
    if not isinstance(dependencies, dict):
        raise ValueError(f"{package_json}: 'dependencies' must be an object")
    return list(dependencies.keys())


def list_distribution_files(package_dir: Path) -> List[Path]:
    """
    Files to publish for a package: its dist folder when present, otherwise
    the whole package minus DISTRIBUTION_EXCLUDES.
    """
    dist_dir = package_dir / DIST_SEGMENT
    if dist_dir.is_dir():
        return list(iter_files(dist_dir, exclude_patterns=["*.map"]))
    return list(iter_files(package_dir, exclude_dirs=["node_modules"], exclude_patterns=DISTRIBUTION_EXCLUDES))


def flatten_dist(relative: Path | PurePosixPath | str) -> PurePosixPath:
    """
    Drop every path segment named "dist" (case-insensitive), keeping the rest.

    Accepts either separator so Windows-style relative paths flatten too.
    """
    raw = str(relative).replace("\\", "/")
    segments = [part for part in raw.split("/") if part and part.lower() != DIST_SEGMENT]
    return PurePosixPath(*segments) if segments else PurePosixPath(".")


class VendorTask(Task):
    name = "thirdParty"
    description = "Copy third-party packages from node_modules into plugins/."
    start_message = "Copying third-party libraries..."
    done_message = "All plugins copied"

    def plan(self, declared: List[str]) -> Tuple[List[VendorEntry], List[str]]:
        """Explicit entries, then declared dependencies not covered by them."""
        vendor = self.config.vendor
        explicit = list(vendor.entries)
        handled = {entry.package for entry in explicit} | set(vendor.exclude)
        return explicit, [name for name in declared if name not in handled]

    def execute(self, report: TaskReport) -> None:
        try:
            declared = read_dependencies(Path(self.config.vendor.package_json))
        except (OSError, ValueError) as exc:
            self.record_failure(report, self.config.vendor.package_json, exc)
            declared = []
        explicit, generic = self.plan(declared)
        installed_on_purpose: Set[str] = set(declared)

        jobs = [(entry.package, self._copy_entry, (entry, entry.package in installed_on_purpose)) for entry in explicit]
        jobs += [(name, self._copy_generic, (name,)) for name in generic]
        if not jobs:
            self.logger.info("No third-party packages to copy")
            return

        workers = max(1, min(self.config.workers, len(jobs)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="vendor") as pool:
            futures = [(package, pool.submit(func, *args)) for package, func, args in jobs]
            for package, future in futures:
                try:
                    report.merge(future.result())
                except (OSError, ValueError) as exc:
                    self.record_failure(report, package, exc)

    def _copy_entry(self, entry: VendorEntry, declared: bool) -> TaskReport:
        partial = TaskReport(task=self.name)
        source = Path(self.config.vendor.node_modules) / entry.package
        if entry.source:
            source = source / entry.source
        if not source.is_dir():
            if declared:
                self.record_failure(partial, entry.package, f"package directory not found: {source}")
            else:
                self.logger.debug("Skipping %s (not installed)", entry.package)
                partial.skipped.append(source)
            return partial
        destination = self.layout.plugins_out / entry.target_name
        for path in iter_files(source):
            partial.written.append(copy_file(path, destination / path.relative_to(source)))
        self.logger.debug("Copied %s -> %s", source, destination)
        return partial

    def _copy_generic(self, package: str) -> TaskReport:
        partial = TaskReport(task=self.name)
        node_modules = Path(self.config.vendor.node_modules)
        package_dir = node_modules / package
        if not package_dir.is_dir():
            self.record_failure(partial, package, f"package directory not found: {package_dir}")
            return partial
        for path in list_distribution_files(package_dir):
            relative = flatten_dist(path.relative_to(node_modules).as_posix())
            partial.written.append(copy_file(path, self.layout.plugins_out / Path(*relative.parts)))
        return partial

