"""
Transform collaborators used by the compiler tasks.
"""

from .css import SassCompiler, SassMinifier, StyleCompileError, VendorPrefixer
from .include import IncludeResolver
from .js import BabelTranspiler, JsMinifier, PassthroughTranspiler, ScriptCompileError

__all__ = [
    "SassCompiler",
    "SassMinifier",
    "StyleCompileError",
    "VendorPrefixer",
    "IncludeResolver",
    "BabelTranspiler",
    "JsMinifier",
    "PassthroughTranspiler",
    "ScriptCompileError",
]
