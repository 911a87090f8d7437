"""One watch session: a background poller plus the foreground command loop."""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from render_watch.commands import run_command_loop
from render_watch.poller import Poller, WatchTargetError

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = 2.0

__all__ = ["DEFAULT_GRACE_PERIOD", "WatchSession", "WatchSummary", "WatchTargetError", "run_watch"]


@dataclass(slots=True)
class WatchSummary:
    renders: int
    poller_stopped: bool


def _noop() -> None:
    return None


class WatchSession:
    def __init__(
        self,
        *,
        target: Path,
        render: Callable[[], None],
        watch_delay: float,
        on_first_render: Callable[[], None] = _noop,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        stream: TextIO | None = None,
    ) -> None:
        self.target = target.resolve()
        self.grace_period = grace_period
        self.renders = 0
        self._render = render
        self._on_first_render = on_first_render
        self._stream = stream
        self._render_lock = threading.Lock()
        self.poller = Poller(
            self.target,
            self._render_serialized,
            delay=watch_delay,
            wait_for_arm=True,
        )

    def _render_serialized(self) -> None:
        with self._render_lock:
            self.renders += 1
            self._render()

    def _first_render_done(self) -> None:
        self.poller.arm()
        self._on_first_render()

    def run(self) -> WatchSummary:
        """Run until the command loop exits, then stop the poller.

        Raises :class:`WatchTargetError` before anything renders when the
        target cannot be read. A ``KeyboardInterrupt`` while waiting for the
        poller propagates to the caller.
        """
        self.poller.start()
        logger.info("Watching %s", self.target)
        try:
            run_command_loop(self._render_serialized, self._first_render_done, self._stream)
        finally:
            stopped = self.poller.stop(self.grace_period)
            if not stopped:
                logger.warning(
                    "Poller did not stop within %.1fs, leaving it to exit with the process",
                    self.grace_period,
                )
        return WatchSummary(renders=self.renders, poller_stopped=stopped)


def run_watch(
    *,
    target: Path,
    render: Callable[[], None],
    watch_delay: float,
    on_first_render: Callable[[], None] = _noop,
    grace_period: float = DEFAULT_GRACE_PERIOD,
    stream: TextIO | None = None,
) -> WatchSummary:
    session = WatchSession(
        target=target,
        render=render,
        watch_delay=watch_delay,
        on_first_render=on_first_render,
        grace_period=grace_period,
        stream=stream,
    )
    return session.run()
