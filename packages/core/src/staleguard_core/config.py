import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping, Optional

import yaml

from staleguard_core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict = {
    "fetch_depth": 50,
    "re_request": True,
    "dismiss_message": "Approval dismissed: the pull request changed since it was reviewed.",
    "ignore_bots": True,
    "dismiss_change_requested": False,
    "show_summary": True,
    "artifact_name": "staleguard-state",
    "search_depth": 10,
    "workflow": None,  # None = the workflow that triggered this run
}

_BOOL_KEYS = ("re_request", "ignore_bots", "dismiss_change_requested", "show_summary")
_POSITIVE_INT_KEYS = ("fetch_depth", "search_depth")
_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off", ""}

ENV_PREFIX = "STALEGUARD_"


@dataclass(frozen=True)
class Config:
    """Immutable settings for one execution.

    Built once by load_config() and handed to every component that needs it.
    Nothing below the CLI reads environment variables or files on its own.
    """

    fetch_depth: int
    re_request: bool
    dismiss_message: str
    ignore_bots: bool
    dismiss_change_requested: bool
    show_summary: bool
    artifact_name: str
    search_depth: int
    workflow: Optional[str] = None


def _parse_bool(key: str, value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def _parse_positive_int(key: str, value) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a positive integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a positive integer, got {value!r}")
    if number < 1:
        raise ConfigError(f"{key} must be a positive integer, got {value!r}")
    return number


def _env_overrides(environ: Mapping[str, str]) -> dict:
    """Collect STALEGUARD_<KEY> variables, e.g. STALEGUARD_RE_REQUEST=false."""
    overrides = {}
    for key in DEFAULT_CONFIG:
        value = environ.get(ENV_PREFIX + key.upper())
        if value is not None:
            overrides[key] = value
    return overrides


def load_config(
    config_path: str = ".staleguard.yml",
    cli_overrides: Optional[dict] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Build the execution config by merging (in order of precedence):
      1. Built-in defaults
      2. .staleguard.yml in the current directory
      3. STALEGUARD_* environment variables
      4. CLI argument overrides
    """
    environ = os.environ if environ is None else environ
    merged = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ConfigError(f"{config_path} must contain a mapping at the top level")
        for key, value in file_config.items():
            if key not in DEFAULT_CONFIG:
                logger.debug("Ignoring unknown config key %r in %s", key, config_path)
                continue
            merged[key] = value

    merged.update(_env_overrides(environ))

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                merged[key] = value

    for key in _BOOL_KEYS:
        merged[key] = _parse_bool(key, merged[key])
    for key in _POSITIVE_INT_KEYS:
        merged[key] = _parse_positive_int(key, merged[key])

    if not merged["artifact_name"]:
        raise ConfigError("artifact_name must not be empty")
    if not merged["dismiss_message"]:
        # GitHub rejects dismissals without a message.
        raise ConfigError("dismiss_message must not be empty")

    return Config(**{f.name: merged[f.name] for f in fields(Config)})
