"""
HTML include resolution.

A directive looks like ``%%include("partials/header.html")`` or, with a JSON
context, ``%%include("partials/nav.html", {"active": "home"})``. Context keys
replace ``%%active`` tokens inside the included file. Paths resolve against
the including file's directory; a leading ``/`` resolves against the html
root instead. The included text inherits the directive's indentation.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..errors import IncludeError

logger = logging.getLogger(__name__)


class IncludeResolver:
    def __init__(self, root: Path, *, prefix: str = "%%", max_depth: int = 32) -> None:
        self.root = Path(root).resolve()
        self.prefix = prefix
        self.max_depth = max_depth
        self._directive = re.compile(re.escape(prefix) + r"include\s*\(")
        self._variable = re.compile(re.escape(prefix) + r"([A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*)")

    def render(self, path: Path, context: Optional[Mapping[str, Any]] = None) -> str:
        """
        Return the content of path with every include directive expanded.

        Raises:
            IncludeError: On a missing, cyclic, malformed or too-deep include.
        """
        target = Path(path).resolve()
        text = target.read_text(encoding="utf-8")
        return self._expand(target, text, dict(context or {}), [target])

    def _expand(self, path: Path, text: str, context: Dict[str, Any], stack: List[Path]) -> str:
        parts: List[str] = []
        position = 0
        for match in self._directive.finditer(text):
            start = match.start()
            if start < position:
                continue
            line = text.count("\n", 0, start) + 1
            end = _find_closing(text, match.end())
            if end is None:
                raise IncludeError(path, line, "", "unterminated include directive")
            reference, extra = _parse_arguments(text[match.end():end], path, line)
            target = self._locate(path, reference)
            if not target.is_file():
                raise IncludeError(path, line, reference, f"file not found: {target}")
            if target in stack:
                raise IncludeError(path, line, reference, "include cycle")
            if len(stack) >= self.max_depth:
                raise IncludeError(path, line, reference, f"nesting deeper than {self.max_depth}")

            merged = {**context, **extra}
            try:
                included_text = target.read_text(encoding="utf-8")
            except OSError as exc:
                raise IncludeError(path, line, reference, str(exc)) from exc
            included = self._expand(target, included_text, merged, [*stack, target])

            parts.append(self._substitute(text[position:start], context))
            parts.append(_indent(included, _leading_whitespace(text, start)))
            position = end + 1
        parts.append(self._substitute(text[position:], context))
        return "".join(parts)

    def _locate(self, including: Path, reference: str) -> Path:
        if reference.startswith("/"):
            return (self.root / reference.lstrip("/")).resolve()
        return (including.parent / reference).resolve()

    def _substitute(self, text: str, context: Mapping[str, Any]) -> str:
        if not context or self.prefix not in text:
            return text

        def _replace(match: re.Match) -> str:
            found, value = _lookup(context, match.group(1))
            if not found:
                return match.group(0)
            return value if isinstance(value, str) else json.dumps(value)

        return self._variable.sub(_replace, text)


def _lookup(context: Mapping[str, Any], dotted: str) -> Tuple[bool, Any]:
    current: Any = context
    for key in dotted.split("."):
        if not isinstance(current, Mapping) or key not in current:
            return False, None
        current = current[key]
    return True, current


def _find_closing(text: str, index: int) -> Optional[int]:
    """Index of the parenthesis closing a directive whose arguments start at index."""
    depth = 1
    quote: Optional[str] = None
    i = index
    while i < len(text):
        char = text[i]
        if quote:
            if char == "\\":
                i += 2
                continue
            if char == quote:
                quote = None
        elif char in "'\"":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def _parse_arguments(raw: str, path: Path, line: int) -> Tuple[str, Dict[str, Any]]:
    body = raw.strip()
    if not body or body[0] not in "'\"":
        raise IncludeError(path, line, body, "expected a quoted path")
    quote = body[0]
    closing = body.find(quote, 1)
    if closing == -1:
        raise IncludeError(path, line, body, "unterminated path string")
    reference = body[1:closing]
    remainder = body[closing + 1:].strip()
    if not remainder:
        return reference, {}
    if not remainder.startswith(","):
        raise IncludeError(path, line, reference, "unexpected text after path")
    try:
        extra = json.loads(remainder[1:])
    except json.JSONDecodeError as exc:
        raise IncludeError(path, line, reference, f"invalid JSON context: {exc}") from exc
    if not isinstance(extra, dict):
        raise IncludeError(path, line, reference, "context must be a JSON object")
    return reference, extra


def _leading_whitespace(text: str, index: int) -> str:
    line_start = text.rfind("\n", 0, index) + 1
    prefix = text[line_start:index]
    return prefix if prefix and not prefix.strip() else ""


def _indent(content: str, indent: str) -> str:
    if content.endswith("\n"):
        content = content[:-1]
    if not indent:
        return content
    lines = content.split("\n")
    return "\n".join([lines[0], *[f"{indent}{line}" if line.strip() else line for line in lines[1:]]])
