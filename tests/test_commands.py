from __future__ import annotations

import io
import logging
from collections.abc import Iterator

import pytest

from render_watch.commands import run_command_loop


class _Recorder:
    def __init__(self) -> None:
        self.events: list[str] = []

    def render(self) -> None:
        self.events.append("render")

    def first(self) -> None:
        self.events.append("first")


@pytest.mark.parametrize("command", ["", "r", "refresh"])
def test_refresh_commands_render_once(command: str) -> None:
    recorder = _Recorder()

    run_command_loop(recorder.render, recorder.first, io.StringIO(f"{command}\nexit\n"))

    assert recorder.events == ["render", "first", "render"]


@pytest.mark.parametrize("command", ["exit", "quit", "q"])
def test_exit_commands_stop_without_rendering(command: str) -> None:
    recorder = _Recorder()

    run_command_loop(recorder.render, recorder.first, io.StringIO(f"{command}\nrefresh\n"))

    assert recorder.events == ["render", "first"]


def test_unknown_command_logs_once_and_continues(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="render_watch")
    recorder = _Recorder()

    run_command_loop(recorder.render, recorder.first, io.StringIO("Refresh\nexit\n"))

    assert recorder.events == ["render", "first"]
    unknown = [record for record in caplog.records if "Unknown command" in record.getMessage()]
    assert len(unknown) == 1
    assert unknown[0].levelno == logging.ERROR
    assert "'Refresh'" in unknown[0].getMessage()


def test_prompt_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="render_watch")
    recorder = _Recorder()

    run_command_loop(recorder.render, recorder.first, io.StringIO(""))

    assert "Type '[refresh|exit]'" in caplog.text


def test_end_of_stream_ends_loop() -> None:
    recorder = _Recorder()

    run_command_loop(recorder.render, recorder.first, io.StringIO("r\n"))

    assert recorder.events == ["render", "first", "render"]


def test_windows_line_endings_are_stripped() -> None:
    recorder = _Recorder()

    run_command_loop(recorder.render, recorder.first, io.StringIO("r\r\nq\r\n"))

    assert recorder.events == ["render", "first", "render"]


def test_read_error_is_a_graceful_exit(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="render_watch")
    recorder = _Recorder()

    def broken_stream() -> Iterator[str]:
        yield "r\n"
        raise OSError("stdin closed")

    run_command_loop(recorder.render, recorder.first, broken_stream())  # type: ignore[arg-type]

    assert recorder.events == ["render", "first", "render"]
    assert "Exiting waiting loop" in caplog.text


def test_closed_stream_is_a_graceful_exit(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="render_watch")
    recorder = _Recorder()
    stream = io.StringIO("r\n")
    stream.close()

    run_command_loop(recorder.render, recorder.first, stream)

    assert recorder.events == ["render", "first"]
    assert "Exiting waiting loop" in caplog.text


def test_failing_render_does_not_end_loop() -> None:
    calls: list[int] = []
    first: list[int] = []

    def failing_render() -> None:
        calls.append(1)
        raise RuntimeError("boom")

    run_command_loop(failing_render, lambda: first.append(1), io.StringIO("r\nr\nexit\n"))

    assert len(calls) == 3
    assert first == [1]
