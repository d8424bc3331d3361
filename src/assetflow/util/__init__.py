"""
Shared utility helpers for filesystem and time calculations.
"""

from .filesystem import (
    copy_file,
    directory_lock,
    ensure_directory,
    file_digest,
    iter_files,
    remove_tree,
    write_text_file,
)
from .time import format_duration, is_newer, monotonic

__all__ = [
    "copy_file",
    "directory_lock",
    "ensure_directory",
    "file_digest",
    "iter_files",
    "remove_tree",
    "write_text_file",
    "format_duration",
    "is_newer",
    "monotonic",
]
