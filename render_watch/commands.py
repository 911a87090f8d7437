from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import TextIO

logger = logging.getLogger(__name__)

REFRESH_COMMANDS = frozenset({"", "r", "refresh"})
EXIT_COMMANDS = frozenset({"exit", "quit", "q"})

_USAGE = "[refresh|exit]"


def _render(render: Callable[[], None]) -> None:
    try:
        render()
    except Exception:
        logger.exception("Render failed")


def run_command_loop(
    render: Callable[[], None],
    on_first_render: Callable[[], None],
    stream: TextIO | None = None,
) -> None:
    """Render once, then serve refresh/exit commands read from *stream*.

    Returns when an exit command is read or the stream ends. A read error is
    handled as the end of the stream.
    """
    source = sys.stdin if stream is None else stream
    _render(render)
    on_first_render()

    logger.info("Type '%s' to either force a rendering or exit", _USAGE)
    try:
        for raw_line in source:
            line = raw_line.rstrip("\r\n")
            if line in REFRESH_COMMANDS:
                _render(render)
            elif line in EXIT_COMMANDS:
                return
            else:
                logger.error("Unknown command: '%s', type: '%s'", line, _USAGE)
    # ValueError: the stream was closed under us.
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        logger.debug("Exiting waiting loop", exc_info=exc)
