"""
Configuration loading utilities.

Supports environment variable interpolation and inheritance from a
sibling ``base.yaml``.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from tabularload.config.settings import LoaderConfig


def _interpolate_env_vars(value: str) -> str:
    """
    Interpolate environment variables in string values.

    Supports ${VAR} and ${VAR:default} syntax.
    """
    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        return os.environ.get(var_name, default if default is not None else "")

    return re.sub(pattern, replacer, value)


def _process_config_values(obj: Any) -> Any:
    """Recursively process config values for env var interpolation."""
    if isinstance(obj, str):
        return _interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _process_config_values(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_process_config_values(item) for item in obj]
    return obj


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and process environment variables."""
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is not None and not isinstance(data, dict):
        msg = f"Config file must contain a mapping: {path}"
        raise ValueError(msg)
    return _process_config_values(data) if data else {}


def load_config(
    config_path: Path | None = None,
    base_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> LoaderConfig:
    """
    Load loader configuration from YAML file(s).

    Sections: store, ingestion, concurrency, logging. Omitted sections and
    keys keep their defaults. Empty strings produced by unset environment
    variables count as unset.

    Args:
        config_path: Main configuration file; None yields the defaults.
        base_path: Optional base configuration for inheritance. If omitted,
            a base.yaml next to config_path is used when present.
        overrides: Values merged on top (e.g. from CLI flags).

    Returns:
        Fully validated LoaderConfig instance.
    """
    merged: dict[str, Any] = {}

    if base_path is not None:
        merged = load_yaml(base_path)
    elif config_path is not None:
        potential_base = config_path.parent / "base.yaml"
        if potential_base.exists() and potential_base != config_path:
            merged = load_yaml(potential_base)

    if config_path is not None:
        merged = _deep_merge(merged, load_yaml(config_path))

    if overrides:
        merged = _deep_merge(merged, overrides)

    return LoaderConfig.model_validate(_drop_empty(merged))


def _drop_empty(obj: Any) -> Any:
    """Remove keys whose value is an empty string (unset env vars)."""
    if isinstance(obj, dict):
        return {k: _drop_empty(v) for k, v in obj.items() if v != ""}
    return obj
