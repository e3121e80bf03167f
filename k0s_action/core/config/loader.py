"""
Configuration loader — builds the action inputs from file, env and CLI.

Sources, lowest to highest precedence:

    1. Optional YAML file (flat mapping, or wrapped under ``inputs:``)
    2. Runner input variables (``INPUT_VERSION``, ``INPUT_WAIT-FOR-READY``, …)
    3. Explicit CLI overrides

Values are coerced and validated against the ``ActionInputs`` Pydantic
model. Anything unparsable is a ``ConfigError``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from k0s_action.core.models.cluster import ReadinessConfig

logger = logging.getLogger(__name__)

_TRUE = frozenset({"true", "yes", "y", "1", "on"})
_FALSE = frozenset({"false", "no", "n", "0", "off"})


class ConfigError(Exception):
    """Raised when action inputs are invalid or unreadable."""


class ActionInputs(BaseModel):
    """Validated action inputs."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str = "latest"
    wait_for_ready: bool = True
    timeout: int = Field(default=300, ge=0)
    dns_readiness: bool = False
    dns_timeout: int = Field(default=120, gt=0)
    poll_interval: int = Field(default=5, gt=0)
    settle_seconds: int = Field(default=10, ge=0)
    cleanup: bool = True

    def to_readiness_config(self) -> ReadinessConfig:
        return ReadinessConfig(
            timeout_seconds=self.timeout,
            poll_interval_seconds=self.poll_interval,
            deep_check_enabled=self.dns_readiness,
            dns_timeout_seconds=self.dns_timeout,
        )


_BOOL_FIELDS = frozenset(
    name for name, f in ActionInputs.model_fields.items() if f.annotation is bool
)
_INT_FIELDS = frozenset(
    name for name, f in ActionInputs.model_fields.items() if f.annotation is int
)


def _normalize_key(key: str) -> str:
    return key.strip().lower().replace("-", "_")


def parse_bool(name: str, value: Any) -> bool:
    """Parse a runner-style boolean ('true', 'false', 'yes', …)."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Input '{name}' must be a boolean, got {value!r}")


def parse_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Input '{name}' must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError as e:
        raise ConfigError(f"Input '{name}' must be an integer, got {value!r}") from e


def _coerce(raw: Mapping[str, Any]) -> dict[str, Any]:
    coerced: dict[str, Any] = {}
    for key, value in raw.items():
        if key in _BOOL_FIELDS:
            coerced[key] = parse_bool(key, value)
        elif key in _INT_FIELDS:
            coerced[key] = parse_int(key, value)
        else:
            coerced[key] = str(value).strip()
    return coerced


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML inputs file.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading inputs from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    inputs = data.get("inputs", data) if "inputs" in data else data
    if not isinstance(inputs, dict):
        raise ConfigError(f"'inputs' in {path} must be a mapping")

    return {_normalize_key(str(k)): v for k, v in inputs.items() if v is not None}


def read_runner_inputs(environ: Mapping[str, str]) -> dict[str, str]:
    """Collect ``INPUT_*`` variables for known inputs.

    The runner keeps dashes in input names (``INPUT_WAIT-FOR-READY``);
    the underscore spelling is accepted too. Empty values mean "unset".
    """
    found: dict[str, str] = {}
    for field_name in ActionInputs.model_fields:
        dashed = "INPUT_" + field_name.replace("_", "-").upper()
        underscored = "INPUT_" + field_name.upper()
        for var in (dashed, underscored):
            value = environ.get(var, "")
            if value.strip():
                found[field_name] = value
                break
    return found


def load_inputs(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> ActionInputs:
    """Load and validate action inputs.

    Args:
        config_path: Optional YAML file with input values.
        environ: Environment to read ``INPUT_*`` from (default: os.environ).
        overrides: CLI-supplied values; ``None`` entries are ignored.

    Raises:
        ConfigError: On unknown keys, bad values, or constraint violations.
    """
    env = os.environ if environ is None else environ

    merged: dict[str, Any] = {}
    if config_path is not None:
        merged.update(read_config_file(config_path))
    merged.update(read_runner_inputs(env))
    if overrides:
        merged.update({_normalize_key(k): v for k, v in overrides.items() if v is not None})

    unknown = sorted(set(merged) - set(ActionInputs.model_fields))
    if unknown:
        raise ConfigError(f"Unknown input(s): {', '.join(unknown)}")

    try:
        inputs = ActionInputs.model_validate(_coerce(merged))
    except ValidationError as e:
        raise ConfigError(f"Invalid inputs: {e}") from e

    if not inputs.version:
        inputs = inputs.model_copy(update={"version": "latest"})

    logger.debug("Resolved inputs: %s", inputs.model_dump())
    return inputs
