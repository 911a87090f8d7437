from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

_DURATION_PATTERN = re.compile(r"^\d+(ms|s)$")

ShellName = Literal["auto", "bash", "zsh", "fish", "sh", "pwsh", "cmd"]


def duration_to_seconds(value: str) -> float:
    if value.endswith("ms"):
        return float(value[:-2]) / 1000.0
    if value.endswith("s"):
        return float(value[:-1])
    raise ValueError(f"Unsupported duration format: {value}")


class WatchConfig(BaseModel):
    source: Path
    watch_delay: str = "500ms"
    grace_period: str = "2s"
    command: str | None = None
    shell: ShellName = "auto"
    working_dir: Path | None = None
    env: dict[str, str] = Field(default_factory=dict)

    @field_validator("watch_delay", "grace_period")
    @classmethod
    def validate_duration(cls, value: str) -> str:
        if not _DURATION_PATTERN.match(value):
            raise ValueError("Duration must match '<number>ms' or '<number>s'")
        return value

    @model_validator(mode="after")
    def validate_delay(self) -> WatchConfig:
        if duration_to_seconds(self.watch_delay) <= 0:
            raise ValueError("watch_delay must be strictly positive")
        return self

    @property
    def watch_delay_seconds(self) -> float:
        return duration_to_seconds(self.watch_delay)

    @property
    def grace_period_seconds(self) -> float:
        return duration_to_seconds(self.grace_period)


def parse_watch_config(
    data: dict[str, Any], overrides: dict[str, Any] | None = None
) -> WatchConfig:
    merged = dict(data)
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value
    return WatchConfig.model_validate(merged)


def load_watch_config(path: Path, overrides: dict[str, Any] | None = None) -> WatchConfig:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Watch config at {path} is not valid YAML: {exc}") from exc
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Watch config at {path} must be a YAML object")
    source = raw.get("source")
    if isinstance(source, str) and not Path(source).is_absolute():
        raw["source"] = str(path.parent / source)
    return parse_watch_config(raw, overrides)


def format_validation_error(exc: ValidationError) -> str:
    messages: list[str] = []
    for issue in exc.errors():
        loc = ".".join(str(part) for part in issue.get("loc", []))
        message = issue.get("msg", "validation error")
        messages.append(f"{loc}: {message}")
    return "\n".join(messages)
