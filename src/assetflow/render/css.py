"""
Style-sheet collaborators: compilation, vendor prefixing and minification.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Tuple

import sass

logger = logging.getLogger(__name__)

StyleCompileError = sass.CompileError

# property -> prefixes to emit ahead of the unprefixed declaration
PREFIXED_PROPERTIES: Dict[str, Tuple[str, ...]] = {
    "appearance": ("-webkit-", "-moz-"),
    "backdrop-filter": ("-webkit-",),
    "backface-visibility": ("-webkit-",),
    "box-decoration-break": ("-webkit-",),
    "clip-path": ("-webkit-",),
    "hyphens": ("-webkit-", "-ms-"),
    "mask": ("-webkit-",),
    "mask-image": ("-webkit-",),
    "mask-position": ("-webkit-",),
    "mask-repeat": ("-webkit-",),
    "mask-size": ("-webkit-",),
    "print-color-adjust": ("-webkit-",),
    "tab-size": ("-moz-",),
    "text-decoration-skip-ink": ("-webkit-",),
    "text-size-adjust": ("-webkit-", "-moz-", "-ms-"),
    "user-select": ("-webkit-", "-moz-", "-ms-"),
}

# (property, value) -> prefixed values emitted ahead of the declaration
PREFIXED_VALUES: Dict[Tuple[str, str], Tuple[str, ...]] = {
    ("position", "sticky"): ("-webkit-sticky",),
}

_DECLARATION = re.compile(r"^(?P<indent>\s*)(?P<prop>-?[a-zA-Z][\w-]*)\s*:\s*(?P<value>[^;{}]*?)\s*;(?P<rest>.*)$")


class SassCompiler:
    """Compile SCSS entry files with libsass."""

    def __init__(self, include_paths: Sequence[Path] = (), precision: int = 5) -> None:
        self.include_paths = [str(path) for path in include_paths]
        self.precision = precision

    def compile(self, path: Path) -> str:
        """
        Compile a single entry file to expanded CSS.

        Raises:
            StyleCompileError: When libsass rejects the source.
        """
        include_paths = [str(path.parent), *self.include_paths]
        return sass.compile(
            filename=str(path),
            output_style="expanded",
            include_paths=include_paths,
            precision=self.precision,
        )


class SassMinifier:
    """Minify CSS by round-tripping it through libsass' compressed output."""

    def minify(self, css: str) -> str:
        return sass.compile(string=css, output_style="compressed")


class VendorPrefixer:
    """
    Add vendor-prefixed duplicates of declarations that still need them.

    Works line by line on expanded CSS (one declaration per line). A prefix
    already present earlier in the same block is not emitted twice, so the
    transform is idempotent.
    """

    def __init__(
        self,
        properties: Dict[str, Tuple[str, ...]] | None = None,
        values: Dict[Tuple[str, str], Tuple[str, ...]] | None = None,
    ) -> None:
        self.properties = dict(PREFIXED_PROPERTIES if properties is None else properties)
        self.values = dict(PREFIXED_VALUES if values is None else values)

    def process(self, css: str) -> str:
        output: List[str] = []
        seen: List[set[str]] = [set()]
        for line in css.splitlines():
            stripped = line.strip()
            if stripped.endswith("{"):
                seen.append(set())
                output.append(line)
                continue
            if stripped.startswith("}"):
                if len(seen) > 1:
                    seen.pop()
                output.append(line)
                continue
            match = _DECLARATION.match(line)
            if not match:
                output.append(line)
                continue
            block = seen[-1]
            output.extend(self._expand(match, block))
            block.add(_declaration_key(match.group("prop"), match.group("value")))
            output.append(line)
        result = "\n".join(output)
        if css.endswith("\n"):
            result += "\n"
        return result

    def _expand(self, match: re.Match, block: set[str]) -> Iterable[str]:
        indent = match.group("indent")
        prop = match.group("prop").lower()
        value = match.group("value")
        for prefix in self.properties.get(prop, ()):
            prefixed = f"{prefix}{prop}"
            key = _declaration_key(prefixed, value)
            if key in block:
                continue
            block.add(key)
            yield f"{indent}{prefixed}: {value};"
        for prefixed_value in self.values.get((prop, value.strip().lower()), ()):
            key = _declaration_key(prop, prefixed_value)
            if key in block:
                continue
            block.add(key)
            yield f"{indent}{prop}: {prefixed_value};"


_VALUE_KEYED = {prop for prop, _ in PREFIXED_VALUES}


def _declaration_key(prop: str, value: str) -> str:
    prop = prop.strip().lower()
    if prop in _VALUE_KEYED:
        return f"{prop}:{value.strip().lower()}"
    return prop
