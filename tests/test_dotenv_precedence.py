import os

import pytest

from assetflow.config import ConfigError, ProjectConfig, settings


def test_project_dotenv_overrides_environment(tmp_path, monkeypatch) -> None:
    project_dir = tmp_path / "project"
    project_env = project_dir / ".env"

    project_dir.mkdir()
    project_env.write_text("ASSETFLOW_PORT=4100\n", encoding="utf-8")

    monkeypatch.chdir(project_dir)
    monkeypatch.setenv("ASSETFLOW_PORT", "5000")

    settings._load_dotenv()

    assert os.getenv("ASSETFLOW_PORT") == "4100"


def test_get_settings_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("ASSETFLOW_HOST", "0.0.0.0")
    monkeypatch.setenv("ASSETFLOW_LOG_LEVEL", "debug")
    settings.get_settings.cache_clear()
    try:
        loaded = settings.get_settings()
    finally:
        settings.get_settings.cache_clear()

    assert loaded.host == "0.0.0.0"
    assert loaded.log_level == "debug"


def test_malformed_environment_value_raises_config_error(monkeypatch) -> None:
    monkeypatch.setenv("ASSETFLOW_OPEN_BROWSER", "perhaps")
    settings.get_settings.cache_clear()
    try:
        with pytest.raises(ConfigError, match="ASSETFLOW_OPEN_BROWSER"):
            settings.get_settings()
    finally:
        settings.get_settings.cache_clear()


def test_out_of_range_port_override_raises_config_error() -> None:
    overrides = settings.Settings(port=70000)

    with pytest.raises(ConfigError, match="server override"):
        overrides.apply(ProjectConfig())
