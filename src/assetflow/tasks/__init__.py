"""
Pipeline tasks: one per asset class plus the clean step.
"""

from .base import Task, TaskReport
from .clean import CleanTask
from .images import ImagesTask
from .markup import MarkupTask
from .scripts import ScriptBundleTask, ScriptsTask
from .styles import StylesTask
from .vendor import VendorTask, flatten_dist, list_distribution_files, read_dependencies

COMPILER_TASKS = (VendorTask, MarkupTask, ImagesTask, StylesTask, ScriptsTask, ScriptBundleTask)

__all__ = [
    "Task",
    "TaskReport",
    "CleanTask",
    "ImagesTask",
    "MarkupTask",
    "ScriptBundleTask",
    "ScriptsTask",
    "StylesTask",
    "VendorTask",
    "flatten_dist",
    "list_distribution_files",
    "read_dependencies",
    "COMPILER_TASKS",
]
