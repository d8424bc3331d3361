"""
Configuration helpers for the assetflow pipeline.
"""

from ..errors import ConfigError
from .models import (
    DEFAULT_CONFIG_FILENAME,
    ImageConfig,
    MarkupConfig,
    ProjectConfig,
    ScriptConfig,
    ServerConfig,
    StyleConfig,
    VendorConfig,
    VendorEntry,
    WatchConfig,
    load_config,
)
from .settings import Settings, get_settings

__all__ = [
    "DEFAULT_CONFIG_FILENAME",
    "ConfigError",
    "ImageConfig",
    "MarkupConfig",
    "ProjectConfig",
    "ScriptConfig",
    "ServerConfig",
    "StyleConfig",
    "VendorConfig",
    "VendorEntry",
    "WatchConfig",
    "load_config",
    "Settings",
    "get_settings",
]
