"""
Development server and watch loop.
"""

from .devserver import DevServer, reload_targets
from .watch import SubtreeHandler, WatchBinding, WatchLoop, WatchState

__all__ = ["DevServer", "reload_targets", "SubtreeHandler", "WatchBinding", "WatchLoop", "WatchState"]
