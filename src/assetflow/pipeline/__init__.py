"""
Task graph and workflow orchestration.
"""

from .executor import DevSession, Orchestrator, RegistryEntry, RunResult
from .graph import GraphRunner, Parallel, Series, TaskNode, iter_tasks, ordering, parallel, precedes, series, validate

__all__ = [
    "DevSession",
    "Orchestrator",
    "RegistryEntry",
    "RunResult",
    "GraphRunner",
    "Parallel",
    "Series",
    "TaskNode",
    "iter_tasks",
    "ordering",
    "parallel",
    "precedes",
    "series",
    "validate",
]
