"""
Exception types shared across the pipeline.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class AssetflowError(RuntimeError):
    """Base class for errors raised by assetflow."""


class ConfigError(AssetflowError):
    """Raised when configuration files cannot be loaded or validated."""


class CleanError(AssetflowError):
    """Raised when the build directory cannot be removed."""


class IncludeError(AssetflowError):
    """
    Raised when an include directive cannot be resolved.

    Attributes:
        path: File containing the failing directive.
        line: 1-based line number of the directive.
        reference: The path written in the directive.
    """

    def __init__(self, path: Path, line: int, reference: str, reason: str) -> None:
        self.path = path
        self.line = line
        self.reference = reference
        self.reason = reason
        super().__init__(f"{path}:{line}: cannot include '{reference}' ({reason})")


class TaskFailedError(AssetflowError):
    """Raised when a task in a workflow raises instead of reporting."""

    def __init__(self, task: str, cause: Optional[BaseException] = None) -> None:
        self.task = task
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Task '{task}' failed{detail}")
