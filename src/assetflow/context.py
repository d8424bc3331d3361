"""
Shared state handed to every task: paths, collaborators and the reload handle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol, Sequence

from .config import ProjectConfig
from .render import (
    BabelTranspiler,
    JsMinifier,
    PassthroughTranspiler,
    SassCompiler,
    SassMinifier,
    VendorPrefixer,
)

logger = logging.getLogger(__name__)

SOURCE_SUBTREES = ("html", "scss", "js", "images")


class StyleCompiler(Protocol):
    def compile(self, path: Path) -> str: ...


class CssPostProcessor(Protocol):
    def process(self, css: str) -> str: ...


class CssMinifier(Protocol):
    def minify(self, css: str) -> str: ...


class ScriptTranspiler(Protocol):
    def transpile(self, source: str, *, filename: str = "<script>") -> str: ...


class ScriptMinifier(Protocol):
    def minify(self, source: str) -> str: ...


class ReloadNotifier(Protocol):
    def reload(self, paths: Sequence[str] = ()) -> None: ...


class NullNotifier:
    """Notifier used when no development server runs in this process."""

    def reload(self, paths: Sequence[str] = ()) -> None:
        logger.debug("Reload requested but no server is running (%d path(s))", len(paths))


@dataclass(frozen=True)
class ProjectLayout:
    """
    Fixed source and build subtrees under the configured roots.

    Attributes:
        source_root: Root of the html/scss/js/images subtrees.
        build_root: Root of the generated site.
    """
    source_root: Path
    build_root: Path

    @property
    def html_src(self) -> Path:
        return self.source_root / "html"

    @property
    def scss_src(self) -> Path:
        return self.source_root / "scss"

    @property
    def js_src(self) -> Path:
        return self.source_root / "js"

    @property
    def images_src(self) -> Path:
        return self.source_root / "images"

    @property
    def css_out(self) -> Path:
        return self.build_root / "css"

    @property
    def js_out(self) -> Path:
        return self.build_root / "js"

    @property
    def images_out(self) -> Path:
        return self.build_root / "images"

    @property
    def plugins_out(self) -> Path:
        return self.build_root / "plugins"

    def source_subtree(self, name: str) -> Path:
        if name not in SOURCE_SUBTREES:
            raise KeyError(f"Unknown source subtree: {name}")
        return self.source_root / name


@dataclass
class BuildContext:
    """
    Everything a task needs to run.

    Collaborators are injectable so tests (and alternative toolchains) can
    swap them without touching the tasks.
    """
    config: ProjectConfig
    layout: ProjectLayout
    style_compiler: StyleCompiler
    prefixer: CssPostProcessor
    css_minifier: CssMinifier
    transpiler: ScriptTranspiler
    js_minifier: ScriptMinifier
    notifier: ReloadNotifier = field(default_factory=NullNotifier)

    @classmethod
    def from_config(cls, config: ProjectConfig, *, notifier: Optional[ReloadNotifier] = None, **overrides) -> "BuildContext":
        """
        Build a context with the default collaborators for config.

        Keyword overrides replace individual collaborators.
        """
        layout = ProjectLayout(source_root=Path(config.source_root), build_root=Path(config.build_root))
        transpiler = (
            BabelTranspiler(preset=config.scripts.preset) if config.scripts.transpile else PassthroughTranspiler()
        )
        values = {
            "style_compiler": SassCompiler(include_paths=[layout.scss_src], precision=config.styles.precision),
            "prefixer": VendorPrefixer(),
            "css_minifier": SassMinifier(),
            "transpiler": transpiler,
            "js_minifier": JsMinifier(),
        }
        values.update(overrides)
        return cls(config=config, layout=layout, notifier=notifier or NullNotifier(), **values)
