"""
Script collaborators: transpilation to a baseline target and minification.
"""

from __future__ import annotations

import logging

import dukpy
import rjsmin

logger = logging.getLogger(__name__)

ScriptCompileError = dukpy.JSRuntimeError


class BabelTranspiler:
    """Transpile modern JavaScript with the Babel build bundled in dukpy."""

    def __init__(self, preset: str = "es2015") -> None:
        self.preset = preset

    def transpile(self, source: str, *, filename: str = "<script>") -> str:
        """
        Raises:
            ScriptCompileError: When Babel cannot parse the source.
        """
        result = dukpy.babel_compile(source, presets=[self.preset], filename=filename)
        return result["code"]


class PassthroughTranspiler:
    """Used when transpilation is switched off in the config."""

    def transpile(self, source: str, *, filename: str = "<script>") -> str:
        return source


class JsMinifier:
    def minify(self, source: str) -> str:
        return rjsmin.jsmin(source)
