"""
Environment-driven overrides, loaded from the process environment and `.env`.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from ..errors import ConfigError
from .models import ProjectConfig


def _load_dotenv() -> None:
    cwd_env = Path.cwd() / ".env"
    if cwd_env.exists():
        load_dotenv(dotenv_path=cwd_env, override=True)


_load_dotenv()


class Settings(BaseModel):
    """
    Container for runtime overrides read from environment variables.

    Attributes:
        log_level: Overrides the CLI --log-level option.
        port: Overrides server.port.
        host: Overrides server.host.
        open_browser: Overrides server.open_browser.
    """
    log_level: Optional[str] = Field(default=None, alias="ASSETFLOW_LOG_LEVEL")
    port: Optional[int] = Field(default=None, alias="ASSETFLOW_PORT")
    host: Optional[str] = Field(default=None, alias="ASSETFLOW_HOST")
    open_browser: Optional[bool] = Field(default=None, alias="ASSETFLOW_OPEN_BROWSER")

    model_config = {
        "populate_by_name": True,
    }

    def apply(self, config: ProjectConfig) -> ProjectConfig:
        """
        Return config with any server overrides from the environment applied.
        """
        updates = {}
        if self.port is not None:
            updates["port"] = self.port
        if self.host:
            updates["host"] = self.host
        if self.open_browser is not None:
            updates["open_browser"] = self.open_browser
        if not updates:
            return config
        try:
            server = config.server.model_validate({**config.server.model_dump(), **updates})
        except ValidationError as exc:
            raise ConfigError(f"Invalid server override from the environment: {exc}") from exc
        return config.model_copy(update={"server": server})


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load overrides from environment/.env exactly once.

    Returns:
        A Settings object populated from environment variables.

    Raises:
        ConfigError: If a variable holds a value of the wrong type.
    """
    values = {}
    for field in Settings.model_fields.values():
        raw = os.getenv(field.alias)
        if raw is not None and raw.strip() != "":
            values[field.alias] = raw
    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid environment override: {exc}") from exc
