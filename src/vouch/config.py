from __future__ import annotations

import re
from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from vouch.matchers import DEFAULT_TOLERANCE

CONFIG_FILENAME = "vouch.yaml"


class ReporterType(str, Enum):
    MINIMAL = "minimal"
    VERBOSE = "verbose"


class VouchConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reporter: ReporterType = ReporterType.MINIMAL
    parallel: int = Field(1, ge=1, le=100)
    test_pattern: str = "test"
    filter: str | None = None
    filter_regex: bool = False
    continue_on_failure: bool = False
    tolerance: float = Field(DEFAULT_TOLERANCE, ge=0)
    poll_interval: float = Field(1.0, gt=0)
    junit_xml: str | None = None
    log_file: str | None = None

    @field_validator("test_pattern")
    @classmethod
    def test_pattern_must_compile(cls, v: str) -> str:
        if not v:
            raise ValueError("test_pattern must not be empty")
        try:
            re.compile(v)
        except re.error as exc:
            raise ValueError(f"test_pattern is not a valid regular expression: {exc}")
        return v


def load_config(path: Path) -> VouchConfig:
    """Load and validate a config from a YAML file."""
    config_dir = path.parent.resolve()

    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Expected a mapping at the top level of {path}")

    config = VouchConfig(**raw)

    # Resolve relative output paths relative to config file location
    for key in ("junit_xml", "log_file"):
        value = getattr(config, key)
        if value is not None and not Path(value).is_absolute():
            setattr(config, key, str((config_dir / value).resolve()))

    return config


def find_config(start: Path) -> Path | None:
    """Return ``vouch.yaml`` in ``start`` if it exists."""
    candidate = start / CONFIG_FILENAME
    return candidate if candidate.is_file() else None
