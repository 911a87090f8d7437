"""Polling file watcher that re-renders a document tree on change."""

from render_watch.models import WatchConfig, load_watch_config
from render_watch.poller import PollState, Poller, WatchTargetError, poll_once
from render_watch.session import WatchSession, WatchSummary, run_watch

__all__ = [
    "PollState",
    "Poller",
    "WatchConfig",
    "WatchSession",
    "WatchSummary",
    "WatchTargetError",
    "load_watch_config",
    "poll_once",
    "run_watch",
]
