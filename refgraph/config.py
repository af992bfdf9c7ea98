"""Lint configuration: rc file in the lint root, then environment overrides.

Example ``.refgraphrc.yaml``:

    exclude:
      - "archive/**"
    builtin_agents:
      - house-reviewer
    fail_on: warning
    orphan_check: false

Environment overrides (applied after the file):
- REFGRAPH_FAIL_ON: error | warning | suggestion
- REFGRAPH_FORMAT: console | json
- REFGRAPH_NO_CYCLE_CHECK / REFGRAPH_NO_ORPHAN_CHECK: any truthy value
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from enum import StrEnum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from refgraph.errors import ConfigError
from refgraph.models import Severity
from refgraph.paths import get_config_paths

logger = logging.getLogger(__name__)

ENV_PREFIX = "REFGRAPH_"

_TRUTHY = {"1", "true", "yes", "on"}


class OutputFormat(StrEnum):
    CONSOLE = "console"
    JSON = "json"


class LintConfig(BaseModel):
    """Settings for one lint run."""

    model_config = ConfigDict(extra="forbid")

    # Glob patterns, relative to the root, for files to leave out of discovery
    exclude: list[str] = Field(default_factory=list)
    # Extra Task() targets that exist at runtime without an agent file
    builtin_agents: list[str] = Field(default_factory=list)
    fail_on: Severity = Severity.ERROR
    cycle_check: bool = True
    orphan_check: bool = True
    format: OutputFormat = OutputFormat.CONSOLE

    @field_validator("fail_on")
    @classmethod
    def _not_info(cls, value: Severity) -> Severity:
        if value == Severity.INFO:
            raise ValueError("fail_on must be error, warning or suggestion")
        return value


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot parse {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    return data


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Config values set through REFGRAPH_* environment variables."""
    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}

    if env.get(f"{ENV_PREFIX}FAIL_ON"):
        overrides["fail_on"] = env[f"{ENV_PREFIX}FAIL_ON"].strip().lower()
    if env.get(f"{ENV_PREFIX}FORMAT"):
        overrides["format"] = env[f"{ENV_PREFIX}FORMAT"].strip().lower()
    if env.get(f"{ENV_PREFIX}NO_CYCLE_CHECK", "").strip().lower() in _TRUTHY:
        overrides["cycle_check"] = False
    if env.get(f"{ENV_PREFIX}NO_ORPHAN_CHECK", "").strip().lower() in _TRUTHY:
        overrides["orphan_check"] = False
    return overrides


def load_config(root: Path, environ: Mapping[str, str] | None = None) -> LintConfig:
    """Load the first rc file found in ``root`` and apply env overrides.

    Raises:
        ConfigError: If the file cannot be parsed or fails validation
    """
    data: dict[str, Any] = {}
    source = "defaults"
    for path in get_config_paths(root):
        if path.is_file():
            data = _read_config_file(path)
            source = str(path)
            break

    data.update(env_overrides(environ))

    try:
        config = LintConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration ({source}): {e}") from e

    logger.debug("Loaded config from %s: %s", source, config)
    return config
