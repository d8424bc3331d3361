import re
from pathlib import Path

import pytest
from typer.testing import CliRunner

from assetflow import cli
from assetflow.config import settings

from conftest import write


def _invoke(runner: CliRunner, config_file: Path, *args: str):
    return runner.invoke(cli.app, ["--config", str(config_file), *args])


def test_cli_build_writes_every_asset_class(runner: CliRunner, project, config_file: Path) -> None:
    result = _invoke(runner, config_file, "build")

    assert result.exit_code == 0, result.output
    assert "Build completed." in result.output
    for relative in ["index.html", "css/main.min.css", "js/combined.min.js", "images/logo.png", "plugins/lodash/lodash.js"]:
        assert (project.build / relative).is_file(), relative


def test_cli_build_twice_gives_the_same_tree(runner: CliRunner, project, config_file: Path) -> None:
    def snapshot() -> dict:
        return {p.relative_to(project.build).as_posix(): p.read_bytes() for p in project.build.rglob("*") if p.is_file()}

    assert _invoke(runner, config_file, "build").exit_code == 0
    first = snapshot()
    assert _invoke(runner, config_file, "build").exit_code == 0

    assert snapshot() == first


def test_cli_build_reports_failures_and_strict_exits(runner: CliRunner, project, config_file: Path) -> None:
    write(project.src / "scss" / "broken.scss", ".a { color: $missing; }\n")

    lenient = _invoke(runner, config_file, "build")
    strict = _invoke(runner, config_file, "build", "--strict")

    assert lenient.exit_code == 0
    assert (project.build / "css" / "main.css").exists()
    assert strict.exit_code == 1
    assert "1 file(s) failed." in strict.output


def test_cli_single_task_and_clean(runner: CliRunner, project, config_file: Path) -> None:
    html = _invoke(runner, config_file, "html")

    assert html.exit_code == 0, html.output
    assert (project.build / "index.html").exists()
    assert not (project.build / "css").exists()

    clean = _invoke(runner, config_file, "clean")

    assert clean.exit_code == 0, clean.output
    assert not project.build.exists()


def test_cli_lists_tasks(runner: CliRunner, config_file: Path) -> None:
    result = _invoke(runner, config_file, "tasks")

    assert result.exit_code == 0
    for name in ["clean", "thirdParty", "html", "img", "styles", "js", "jsBundle", "serve", "watch", "build", "dev"]:
        assert name in result.output


def test_cli_config_hash_tracks_changes(runner: CliRunner, config_file: Path) -> None:
    first = _invoke(runner, config_file, "config-hash").output.strip()
    again = _invoke(runner, config_file, "config-hash").output.strip()
    config_file.write_text("workers = 2\n" + config_file.read_text(encoding="utf-8"), encoding="utf-8")
    changed = _invoke(runner, config_file, "config-hash").output.strip()

    assert re.fullmatch(r"[0-9a-f]{64}", first)
    assert first == again
    assert changed != first


def test_cli_invalid_config_exits_with_error(runner: CliRunner, tmp_path: Path) -> None:
    path = tmp_path / "assetflow.toml"
    path.write_text('source_root = "src"\nunknown_option = true\n', encoding="utf-8")

    result = runner.invoke(cli.app, ["--config", str(path), "build"])

    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_cli_missing_config_path(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["--config", str(tmp_path / "nope.toml"), "build"])

    assert result.exit_code == 2


def test_cli_version(runner: CliRunner) -> None:
    result = runner.invoke(cli.app, ["--version"])

    assert result.exit_code == 0
    assert "assetflow" in result.output


@pytest.mark.parametrize("port", ["abc", "70000"])
def test_cli_invalid_environment_override_exits_with_error(
    runner: CliRunner,
    project,
    config_file: Path,
    monkeypatch: pytest.MonkeyPatch,
    port: str,
) -> None:
    monkeypatch.setenv("ASSETFLOW_PORT", port)
    settings.get_settings.cache_clear()
    try:
        result = _invoke(runner, config_file, "build")
    finally:
        settings.get_settings.cache_clear()

    assert result.exit_code == 1
    assert "Configuration error" in result.output
    assert not project.build.exists()


def test_cli_out_of_range_port_option_is_rejected(runner: CliRunner, project, config_file: Path) -> None:
    result = _invoke(runner, config_file, "serve", "--port", "70000", "--no-open")

    assert result.exit_code == 1
    assert "Configuration error" in result.output
