"""
Command line interface for the assetflow build pipeline.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import ConfigError, ProjectConfig, get_settings, load_config
from .context import BuildContext
from .errors import AssetflowError, TaskFailedError
from .pipeline import Orchestrator, RunResult
from .tasks import TaskReport

console = Console()
app = typer.Typer(help="Build front-end assets and serve them with live reload.")
logger = logging.getLogger(__name__)

LOG_LEVELS = ["critical", "error", "warning", "info", "debug"]

TASK_COMMANDS = {
    "clean": "Delete the build directory.",
    "html": "Resolve includes in HTML pages.",
    "styles": "Compile SCSS entry files to expanded and minified CSS.",
    "js": "Transpile and minify standalone scripts.",
    "jsBundle": "Bundle layout.js + main.js into combined.js / combined.min.js.",
    "img": "Copy new or changed images.",
    "thirdParty": "Copy third-party packages into build/plugins.",
    "watch": "Watch sources and rebuild on change.",
    "reload": "Push a reload to browsers connected to this process.",
}


@dataclass
class CliState:
    config_path: Optional[Path] = None


def _configure_logging(level_name: str) -> None:
    env_override = os.getenv("ASSETFLOW_LOG_LEVEL")
    level_str = (env_override or level_name or "info").upper()
    if level_str not in {lvl.upper() for lvl in LOG_LEVELS}:
        level_str = "INFO"
    logging.basicConfig(
        level=getattr(logging, level_str, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.debug("Logging configured at %s", level_str)


def _resolve_config_path(value: Optional[Path]) -> Optional[Path]:
    """Ensure an explicit config path exists and return it absolute."""
    if value is None:
        return None
    resolved = value.expanduser().resolve()
    if not resolved.exists():
        raise typer.BadParameter(f"No config file found at {resolved}")
    if not resolved.is_file():
        raise typer.BadParameter(f"Config path must be a file, got directory: {resolved}")
    return resolved


def _load_config_or_exit(path: Optional[Path]) -> ProjectConfig:
    try:
        return get_settings().apply(load_config(path))
    except ConfigError as exc:
        console.print(f"[bold red]Configuration error:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _state(ctx: typer.Context) -> CliState:
    if not isinstance(ctx.obj, CliState):
        ctx.obj = CliState()
    return ctx.obj


def _print_reports(reports: List[TaskReport], title: str) -> None:
    if not reports:
        return
    table = Table(title=title)
    table.add_column("Task")
    table.add_column("Written", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Failures", justify="right")
    table.add_column("Duration", justify="right")
    for report in reports:
        rows = dict(report.summary_rows())
        failures = rows["Failures"]
        table.add_row(
            report.task,
            rows["Written"],
            rows["Skipped"],
            f"[red]{failures}[/]" if report.failures else failures,
            rows["Duration"],
        )
    console.print(table)
    for report in reports:
        for key, reason in report.failures.items():
            console.print(f"[bold red]{report.task}[/] {key}: {reason}")


def _block_until_interrupted(result: RunResult) -> None:
    session = result.session
    if session is None:
        return
    if session.server is not None:
        console.print(f"[bold green]Serving[/] {session.server.url} [dim](Ctrl+C to stop)[/]")
    else:
        console.print("[bold green]Watching for changes[/] [dim](Ctrl+C to stop)[/]")
    try:
        while not session.wait(0.5):
            pass
    except KeyboardInterrupt:
        console.print("[yellow]Stopping...[/]")
    finally:
        session.stop()


def _execute(
    ctx: typer.Context,
    name: str,
    *,
    strict: bool = False,
    configure: Optional[Callable[[ProjectConfig], ProjectConfig]] = None,
) -> RunResult:
    config = _load_config_or_exit(_state(ctx).config_path)
    if configure is not None:
        try:
            config = configure(config)
        except ConfigError as exc:
            console.print(f"[bold red]Configuration error:[/] {exc}")
            raise typer.Exit(code=1) from exc
    orchestrator = Orchestrator(BuildContext.from_config(config))
    try:
        result = orchestrator.run(name)
    except TaskFailedError as exc:
        console.print(f"[bold red]{exc}[/]")
        raise typer.Exit(code=1) from exc
    except AssetflowError as exc:
        console.print(f"[bold red]Error:[/] {exc}")
        raise typer.Exit(code=1) from exc

    _print_reports(result.reports, f"assetflow {name}")
    _block_until_interrupted(result)
    if strict and result.failures:
        console.print(f"[bold red]{len(result.failures)} file(s) failed.[/]")
        raise typer.Exit(code=1)
    return result


def _server_overrides(port: Optional[int], open_browser: Optional[bool]) -> Callable[[ProjectConfig], ProjectConfig]:
    def _apply(config: ProjectConfig) -> ProjectConfig:
        updates = {}
        if port is not None:
            updates["port"] = port
        if open_browser is not None:
            updates["open_browser"] = open_browser
        if not updates:
            return config
        try:
            server = config.server.model_validate({**config.server.model_dump(), **updates})
        except ValidationError as exc:
            raise ConfigError(f"Invalid server option: {exc}") from exc
        return config.model_copy(update={"server": server})

    return _apply


@app.callback(invoke_without_command=True)
def _root_command(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show assetflow version and exit.",
        is_flag=True,
    ),
    log_level: str = typer.Option(
        "info",
        "--log-level",
        help="Logging level (critical, error, warning, info, debug).",
        show_default=True,
        case_sensitive=False,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to assetflow.toml (defaults to ./assetflow.toml when present).",
        callback=_resolve_config_path,
    ),
) -> None:
    """
    Run the dev workflow when no subcommand is given.
    """
    _configure_logging(log_level)
    _state(ctx).config_path = config

    if version:
        console.print(f"[bold green]assetflow[/] {__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        _execute(ctx, "dev")


@app.command()
def build(
    ctx: typer.Context,
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Exit non-zero when any file failed to compile.",
    ),
) -> None:
    """
    Clean the build directory, then compile every asset class once.
    """
    _execute(ctx, "build", strict=strict)
    console.print("[bold green]Build completed.[/]")


@app.command()
def dev(
    ctx: typer.Context,
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Override the server port."),
    open_browser: Optional[bool] = typer.Option(
        None,
        "--open/--no-open",
        help="Open the site in a browser once the server is up.",
    ),
) -> None:
    """
    Compile everything, then serve the build directory and watch for changes.
    """
    _execute(ctx, "dev", configure=_server_overrides(port, open_browser))


@app.command()
def serve(
    ctx: typer.Context,
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Override the server port."),
    open_browser: Optional[bool] = typer.Option(
        None,
        "--open/--no-open",
        help="Open the site in a browser once the server is up.",
    ),
) -> None:
    """
    Serve the build directory with live reload (no compilation).
    """
    _execute(ctx, "serve", configure=_server_overrides(port, open_browser))


def _make_task_command(task_name: str) -> Callable[[typer.Context], None]:
    def command(ctx: typer.Context) -> None:
        _execute(ctx, task_name)

    command.__name__ = f"{task_name}_command"
    return command


for _name, _help in TASK_COMMANDS.items():
    app.command(name=_name, help=_help)(_make_task_command(_name))


@app.command("tasks")
def list_tasks(ctx: typer.Context) -> None:
    """
    List every task and workflow that can be run by name.
    """
    config = _load_config_or_exit(_state(ctx).config_path)
    orchestrator = Orchestrator(BuildContext.from_config(config))
    table = Table(title="Tasks")
    table.add_column("Name")
    table.add_column("Description", overflow="fold")
    for entry in orchestrator.registry.values():
        table.add_row(entry.name, entry.description)
    console.print(table)


@app.command("config-hash")
def config_hash(ctx: typer.Context) -> None:
    """
    Output the deterministic hash of the effective configuration.
    """
    config = _load_config_or_exit(_state(ctx).config_path)
    console.print(f"[bold green]{config.hash}[/]")


def main() -> None:
    """
    Entry-point used by the console script defined in pyproject.toml.
    """
    app()
