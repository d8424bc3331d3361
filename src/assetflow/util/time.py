"""
Time-based utilities for change detection and reporting.
"""

from __future__ import annotations

import time
from pathlib import Path


def is_newer(source: Path, destination: Path) -> bool:
    """
    Determine whether source was modified after destination.
    A missing destination counts as older than any source.
    """
    if not destination.exists():
        return True
    return source.stat().st_mtime > destination.stat().st_mtime


def monotonic() -> float:
    return time.perf_counter()


def format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    return f"{seconds:.2f} s"
