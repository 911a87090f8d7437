from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from render_watch.models import (
    WatchConfig,
    duration_to_seconds,
    format_validation_error,
    load_watch_config,
    parse_watch_config,
)


def test_defaults() -> None:
    config = parse_watch_config({"source": "docs"})

    assert config.source == Path("docs")
    assert config.watch_delay_seconds == 0.5
    assert config.grace_period_seconds == 2.0
    assert config.shell == "auto"
    assert config.command is None


def test_duration_to_seconds() -> None:
    assert duration_to_seconds("250ms") == 0.25
    assert duration_to_seconds("3s") == 3.0
    with pytest.raises(ValueError):
        duration_to_seconds("3m")


def test_rejects_malformed_duration() -> None:
    with pytest.raises(ValidationError):
        WatchConfig.model_validate({"source": "docs", "watch_delay": "fast"})


def test_rejects_zero_watch_delay() -> None:
    with pytest.raises(ValidationError):
        WatchConfig.model_validate({"source": "docs", "watch_delay": "0ms"})


def test_zero_grace_period_is_allowed() -> None:
    config = WatchConfig.model_validate({"source": "docs", "grace_period": "0s"})

    assert config.grace_period_seconds == 0.0


def test_overrides_skip_none_values() -> None:
    config = parse_watch_config(
        {"source": "docs", "command": "make html"},
        {"command": None, "watch_delay": "1s"},
    )

    assert config.command == "make html"
    assert config.watch_delay == "1s"


def test_load_resolves_source_relative_to_config(tmp_path: Path) -> None:
    config_path = tmp_path / "rwatch.yaml"
    config_path.write_text(
        """
source: docs
command: make html
watch_delay: 200ms
env:
  MODE: preview
""",
        encoding="utf-8",
    )

    config = load_watch_config(config_path)

    assert config.source == tmp_path / "docs"
    assert config.command == "make html"
    assert config.watch_delay_seconds == 0.2
    assert config.env == {"MODE": "preview"}


def test_load_rejects_non_mapping(tmp_path: Path) -> None:
    config_path = tmp_path / "rwatch.yaml"
    config_path.write_text("- docs\n", encoding="utf-8")

    with pytest.raises(ValueError, match="YAML object"):
        load_watch_config(config_path)


def test_load_rejects_invalid_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "rwatch.yaml"
    config_path.write_text("source: [docs\n", encoding="utf-8")

    with pytest.raises(ValueError, match="not valid YAML"):
        load_watch_config(config_path)


def test_format_validation_error_lists_locations() -> None:
    with pytest.raises(ValidationError) as exc_info:
        WatchConfig.model_validate({"watch_delay": "soon"})

    message = format_validation_error(exc_info.value)

    assert "source:" in message
    assert "watch_delay:" in message
