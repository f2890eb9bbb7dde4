"""Orchestration subpackage for CatalogSync: batch sample-index builds."""

from __future__ import annotations

import importlib
import sys
from types import ModuleType
from typing import Any

_ATTRIBUTE_EXPORTS: dict[str, tuple[str, str]] = {
    "BuildReport": (".models", "BuildReport"),
    "CallableJobRunner": (".runner", "CallableJobRunner"),
    "JobHandle": (".models", "JobHandle"),
    "JobResult": (".models", "JobResult"),
    "JobRunner": (".runner", "JobRunner"),
    "JobSpec": (".models", "JobSpec"),
    "JobState": (".models", "JobState"),
    "SampleIndexBuilder": (".sample_index", "SampleIndexBuilder"),
    "plan_batches": (".sample_index", "plan_batches"),
}

_MODULE_EXPORTS: dict[str, str] = {
    "models": ".models",
    "runner": ".runner",
    "sample_index": ".sample_index",
}

__all__ = sorted({*_ATTRIBUTE_EXPORTS, *_MODULE_EXPORTS})


def _load_module(name: str, module_path: str) -> ModuleType:
    module = importlib.import_module(f"{__name__}{module_path}")
    setattr(sys.modules[__name__], name, module)
    return module


def __getattr__(name: str) -> Any:  # pragma: no cover - exercised via tests
    if name in _ATTRIBUTE_EXPORTS:
        module_path, attr_name = _ATTRIBUTE_EXPORTS[name]
        module = importlib.import_module(f"{__name__}{module_path}")
        value = getattr(module, attr_name)
        setattr(sys.modules[__name__], name, value)
        return value
    if name in _MODULE_EXPORTS:
        return _load_module(name, _MODULE_EXPORTS[name])
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


def __dir__() -> list[str]:  # pragma: no cover - tooling helper
    return sorted(set(globals()) | set(__all__))
