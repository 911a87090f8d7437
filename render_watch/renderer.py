"""Shell command renderer used by the CLI.

The watch session only needs a zero-argument callable; :func:`bind_render`
adapts any ``(config, renderer)`` render callback to that shape.
"""
from __future__ import annotations

import functools
import logging
import os
import subprocess
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeVar

from render_watch.models import ShellName, WatchConfig

logger = logging.getLogger(__name__)

ConfigT = TypeVar("ConfigT")
RendererT = TypeVar("RendererT")

# Leading argv for each shell; the render command is appended as one argument.
_SHELL_PREFIXES: dict[str, tuple[str, ...]] = {
    "bash": ("bash", "-c"),
    "zsh": ("zsh", "-c"),
    "fish": ("fish", "-c"),
    "sh": ("sh", "-c"),
    "pwsh": ("pwsh", "-NoProfile", "-Command"),
    "cmd": ("cmd", "/C"),
}


def platform_shell(os_name: str | None = None) -> ShellName:
    """Shell used for ``shell: auto``."""
    return "cmd" if (os_name or os.name) == "nt" else "sh"


class RenderError(RuntimeError):
    """Raised when the render command fails."""


@dataclass(slots=True)
class CommandRenderer:
    command: str
    shell: ShellName = "auto"
    working_dir: Path | None = None
    env: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: WatchConfig) -> CommandRenderer:
        if not config.command:
            raise ValueError("A render command is required (set 'command' or pass --command)")
        return cls(
            command=config.command,
            shell=config.shell,
            working_dir=config.working_dir,
            env=dict(config.env),
        )

    def argv(self) -> list[str]:
        shell = platform_shell() if self.shell == "auto" else self.shell
        return [*_SHELL_PREFIXES[shell], self.command]


def render_with_command(config: WatchConfig, renderer: CommandRenderer) -> None:
    env = {**os.environ, "RWATCH_SOURCE": str(config.source), **renderer.env}
    started = time.monotonic()
    try:
        subprocess.run(renderer.argv(), check=True, cwd=renderer.working_dir, env=env)
    except subprocess.CalledProcessError as exc:
        raise RenderError(
            f"Render command exited with status {exc.returncode}: {renderer.command}"
        ) from exc
    except OSError as exc:
        raise RenderError(f"Render command could not start: {exc}") from exc
    logger.info("Rendered in %.2fs", time.monotonic() - started)


def bind_render(
    render_fn: Callable[[ConfigT, RendererT], None],
    config: ConfigT,
    renderer: RendererT,
) -> Callable[[], None]:
    return functools.partial(render_fn, config, renderer)
