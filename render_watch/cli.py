from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar, get_args

import click
from pydantic import ValidationError

from render_watch.models import (
    ShellName,
    WatchConfig,
    format_validation_error,
    load_watch_config,
    parse_watch_config,
)
from render_watch.poller import WatchTargetError
from render_watch.renderer import CommandRenderer, RenderError, bind_render, render_with_command
from render_watch.session import run_watch

F = TypeVar("F", bound=Callable[..., Any])

_SHELLS = list(get_args(ShellName))


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="[%(levelname)s] %(message)s",
        force=True,
    )


def _apply(fn: F, options: list[Callable[[F], F]]) -> F:
    for option in reversed(options):
        fn = option(fn)
    return fn


def _render_options(fn: F) -> F:
    return _apply(
        fn,
        [
            click.argument("source", type=click.Path(path_type=Path), required=False),
            click.option(
                "config_path",
                "--config",
                type=click.Path(exists=True, path_type=Path),
                default=None,
            ),
            click.option("command", "--command", "-c", type=str, default=None),
            click.option(
                "shell", "--shell", type=click.Choice(_SHELLS, case_sensitive=False), default=None
            ),
            click.option(
                "working_dir",
                "--cwd",
                type=click.Path(file_okay=False, path_type=Path),
                default=None,
            ),
            click.option("verbose", "--verbose", "-v", is_flag=True, default=False),
            click.option("quiet", "--quiet", "-q", is_flag=True, default=False),
        ],
    )


def _timing_options(fn: F) -> F:
    return _apply(
        fn,
        [
            click.option(
                "delay", "--delay", type=str, default=None, help="Poll delay, e.g. 500ms."
            ),
            click.option(
                "grace", "--grace", type=str, default=None, help="Shutdown grace period."
            ),
        ],
    )


def _resolve_config(
    *,
    source: Path | None,
    config_path: Path | None,
    command: str | None,
    shell: str | None,
    working_dir: Path | None,
    delay: str | None = None,
    grace: str | None = None,
) -> WatchConfig:
    overrides: dict[str, Any] = {
        "source": source,
        "command": command,
        "watch_delay": delay,
        "grace_period": grace,
        "shell": shell.lower() if shell else None,
        "working_dir": working_dir,
    }
    try:
        if config_path is not None:
            return load_watch_config(config_path, overrides)
        if source is None:
            raise click.ClickException("Missing SOURCE (or a --config file that sets 'source')")
        return parse_watch_config({}, overrides)
    except ValidationError as exc:
        raise click.ClickException(format_validation_error(exc)) from exc
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


def _build_renderer(config: WatchConfig) -> CommandRenderer:
    try:
        return CommandRenderer.from_config(config)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group(
    help="Poll a directory and re-run a render command when its files change.",
    context_settings={"help_option_names": ["-h", "--help"]},
)
def app() -> None:
    """render-watch CLI."""


@app.command("watch")
@_render_options
@_timing_options
def watch(
    source: Path | None,
    config_path: Path | None,
    command: str | None,
    shell: str | None,
    working_dir: Path | None,
    verbose: bool,
    quiet: bool,
    delay: str | None,
    grace: str | None,
) -> None:
    _configure_logging(verbose, quiet)
    config = _resolve_config(
        source=source,
        config_path=config_path,
        command=command,
        delay=delay,
        grace=grace,
        shell=shell,
        working_dir=working_dir,
    )
    renderer = _build_renderer(config)

    try:
        summary = run_watch(
            target=config.source,
            render=bind_render(render_with_command, config, renderer),
            watch_delay=config.watch_delay_seconds,
            on_first_render=lambda: click.echo("Initial render done", err=True),
            grace_period=config.grace_period_seconds,
        )
    except WatchTargetError as exc:
        raise click.ClickException(str(exc)) from exc
    except KeyboardInterrupt:
        click.echo("\nWatch stopped.", err=True)
        raise SystemExit(130) from None

    click.echo(f"RENDERS={summary.renders}")
    if not summary.poller_stopped:
        click.echo("POLLER=detached", err=True)


@app.command("render")
@_render_options
def render(
    source: Path | None,
    config_path: Path | None,
    command: str | None,
    shell: str | None,
    working_dir: Path | None,
    verbose: bool,
    quiet: bool,
) -> None:
    _configure_logging(verbose, quiet)
    config = _resolve_config(
        source=source,
        config_path=config_path,
        command=command,
        shell=shell,
        working_dir=working_dir,
    )
    renderer = _build_renderer(config)
    try:
        render_with_command(config, renderer)
    except RenderError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo("STATUS=success")


@app.command("validate")
@click.argument("config_path", type=click.Path(exists=True, path_type=Path), required=False)
@click.option("show_json_schema", "--json-schema", is_flag=True, default=False)
def validate(config_path: Path | None, show_json_schema: bool) -> None:
    if show_json_schema:
        click.echo(json.dumps(WatchConfig.model_json_schema(), indent=2, sort_keys=True))
        return
    if config_path is None:
        raise click.ClickException("Missing CONFIG_PATH")

    try:
        loaded = load_watch_config(config_path)
    except ValidationError as exc:
        raise click.ClickException(format_validation_error(exc)) from exc
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(f"Valid watch config: {config_path}")
    click.echo(f"Source: {loaded.source}")
    click.echo(f"Delay: {loaded.watch_delay}")
    click.echo(f"Grace: {loaded.grace_period}")
    click.echo(f"Command: {loaded.command or '-'}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
