"""Build a ``CatalogSyncConfig`` from a file, the environment and overrides.

Later layers win: file < ``CSYNC_*`` environment < programmatic overrides.
Environment keys map to config paths by lower-casing and splitting on a
double underscore, so ``CSYNC_SYNC__URI_CHUNK_SIZE=500`` sets
``sync.uri_chunk_size``. Values are read as JSON when they parse
(``'["VCF"]'``, ``500``, ``true``) and kept as strings otherwise.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable

import yaml

from .models import CatalogSyncConfig

_LOGGER = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = "CSYNC_"

_PARSERS: dict[str, tuple[str, Callable[[str], Any], type[Exception]]] = {
    ".yaml": ("YAML", yaml.safe_load, yaml.YAMLError),
    ".yml": ("YAML", yaml.safe_load, yaml.YAMLError),
    ".json": ("JSON", json.loads, json.JSONDecodeError),
}


def _read_file(path: str) -> dict[str, Any]:
    p = Path(path)
    if not p.is_file():
        raise ValueError(f"Config file not found: {path}")
    suffix = p.suffix.lower()
    if suffix not in _PARSERS:
        raise ValueError(f"Unsupported file format: {suffix}. Use .yaml or .json")

    kind, parse, error = _PARSERS[suffix]
    try:
        data = parse(p.read_text(encoding="utf-8"))
    except OSError as e:
        raise ValueError(f"Cannot read config file {path}: {e}") from e
    except error as e:
        raise ValueError(f"Invalid {kind} in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must hold a mapping, got {type(data).__name__}")
    return data


def env_overrides(
    environ: Mapping[str, str] | None = None, env_prefix: str = DEFAULT_ENV_PREFIX
) -> dict[str, Any]:
    """Nested override mapping taken from ``env_prefix`` variables.

    Examples:
        >>> env_overrides({"CSYNC_SYNC__STRICT": "true", "HOME": "/root"})
        {'sync': {'strict': True}}
    """
    environ = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    for key, raw in sorted(environ.items()):
        if not key.startswith(env_prefix):
            continue
        path = key[len(env_prefix) :].lower().split("__")
        try:
            value = json.loads(raw)
        except ValueError:
            value = raw
        node = overrides
        for part in path[:-1]:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[path[-1]] = value
        _LOGGER.debug(f"Environment override {key} -> {'.'.join(path)}={value!r}")
    return overrides


def _merge(base: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            merged[key] = _merge(current, value)
        else:
            merged[key] = dict(value) if isinstance(value, Mapping) else value
    return merged


def load_config(
    path: str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    cli_overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> CatalogSyncConfig:
    """Load and validate the configuration.

    Args:
        path: YAML or JSON file; the suffix picks the parser
        env_prefix: Prefix of environment variables to apply
        cli_overrides: Nested overrides applied last
        environ: Used instead of ``os.environ`` when given

    Raises:
        ValueError: If the file cannot be read or the result does not validate
    """
    data: dict[str, Any] = {}
    if path:
        try:
            data = _read_file(path)
        except ValueError as e:
            _LOGGER.error(f"Failed to load config: {e}")
            raise
        _LOGGER.info(f"Loaded config from {path}")

    data = _merge(data, env_overrides(environ, env_prefix))
    data = _merge(data, cli_overrides or {})

    try:
        config = CatalogSyncConfig.model_validate(data)
    except ValueError as e:
        _LOGGER.error(f"Configuration validation failed: {e}")
        raise
    _LOGGER.info(f"Configuration validated. Config hash: {config.config_hash()[:8]}")
    return config


def validate_config_file(path: str) -> bool:
    """Validate ``path`` on its own, without environment overrides."""
    load_config(path=path, environ={})
    return True


def export_config_schema() -> dict[str, Any]:
    return CatalogSyncConfig.model_json_schema()
