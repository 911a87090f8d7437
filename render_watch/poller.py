"""Timestamp polling for ``rwatch watch``.

The poller scans the watch target on a fixed delay and decides, per tick,
whether the tree changed and whether the change has settled long enough to
re-render. A single timestamp bump may be a multi-file write still in
progress, so the first detection only arms the debounce and the render fires
on the next tick (either because nothing else changed, or because a second
change was observed).
"""
from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


class WatchTargetError(RuntimeError):
    """Raised when the watch target itself cannot be stat'd."""


@dataclass(slots=True)
class PollState:
    last_modified: int = -1
    pending_change_count: int = 0


def _raise_walk_error(exc: OSError) -> None:
    raise exc


def _walk_latest(directory: Path) -> int:
    latest = directory.stat().st_mtime_ns
    for root, dirs, files in os.walk(directory, onerror=_raise_walk_error):
        for name in (*dirs, *files):
            latest = max(latest, os.lstat(os.path.join(root, name)).st_mtime_ns)
    return latest


def scan_target(target: Path) -> int | None:
    """Return the newest ``st_mtime_ns`` under *target*.

    A failed directory walk (an entry vanished between listing and stat, a
    permission error) returns ``None`` so the caller keeps its previous value.
    A target that cannot be stat'd at all raises :class:`WatchTargetError`.
    """
    try:
        is_directory = target.is_dir()
    except OSError as exc:
        raise WatchTargetError(f"Cannot read watch target {target}: {exc}") from exc
    if is_directory:
        try:
            return _walk_latest(target)
        except OSError:
            return None
    return _stat_target(target)


def _stat_target(target: Path) -> int:
    try:
        return target.stat().st_mtime_ns
    except OSError as exc:
        raise WatchTargetError(f"Cannot read watch target {target}: {exc}") from exc


def baseline_timestamp(target: Path) -> int:
    """Starting timestamp for a session.

    Falls back to the target's own timestamp when the tree walk fails, so the
    first successful tick does not see a change that never happened.
    """
    current = scan_target(target)
    if current is None:
        return _stat_target(target)
    return current


def find_last_updated(target: Path, previous: int = -1) -> int:
    current = scan_target(target)
    if current is None:
        return previous
    return max(previous, current)


def poll_once(state: PollState, current: int, render: Callable[[], None]) -> bool:
    """Apply one tick of the debounce table to *state*.

    Returns ``True`` when *render* was invoked. The pending counter is cleared
    before *render* runs, so a failing render still leaves the state settled.
    """
    if current > state.last_modified:
        state.last_modified = current
        if state.pending_change_count == 0:
            state.pending_change_count = 1
            logger.debug(
                "Change detected, waiting another iteration to ensure it is fully refreshed"
            )
            return False
    elif state.pending_change_count == 0:
        logger.debug("No change")
        return False

    logger.debug("Change detected, re-rendering")
    state.pending_change_count = 0
    render()
    return True


class Poller:
    """Run :func:`poll_once` on a background thread at a fixed delay.

    Each tick is scheduled ``delay`` seconds after the previous one finished,
    so a slow render throttles polling and ticks never overlap. The state is
    only touched from the poller thread once :meth:`start` returns.
    """

    def __init__(
        self,
        target: Path,
        render: Callable[[], None],
        *,
        delay: float,
        wait_for_arm: bool = False,
        name: str = "render-watch-poller",
    ) -> None:
        if delay < 0:
            raise ValueError("Poll delay must not be negative")
        self.target = target
        self.delay = delay
        self.state = PollState()
        self._render = render
        self._name = name
        self._stop_event = threading.Event()
        self._armed = threading.Event()
        if not wait_for_arm:
            self._armed.set()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Poller already started")
        # Baseline is taken on the caller's thread so a bad target fails startup.
        self.state = PollState(last_modified=baseline_timestamp(self.target))
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def arm(self) -> None:
        """Allow ticks to run. Ticks are held until armed when ``wait_for_arm`` is set."""
        self._armed.set()

    def tick(self) -> bool:
        try:
            current = scan_target(self.target)
        except WatchTargetError as exc:
            logger.debug("Skipping tick: %s", exc)
            return False
        if current is None:
            logger.debug("Scan of %s failed, keeping previous timestamp", self.target)
            return False
        return poll_once(self.state, max(current, self.state.last_modified), self._render_safely)

    def stop(self, timeout: float | None = None) -> bool:
        """Cancel future ticks and wait up to *timeout* seconds for the thread.

        Returns ``True`` when the poller thread is no longer running.
        """
        self._stop_event.set()
        self._armed.set()
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _render_safely(self) -> None:
        if self._stop_event.is_set():
            logger.debug("Poller stopping, skipping render")
            return
        try:
            self._render()
        except Exception:
            logger.exception("Render failed, watching for the next change")

    def _run(self) -> None:
        self._armed.wait()
        while not self._stop_event.wait(self.delay):
            self.tick()
