"""Fixtures loading the generate-version scripts."""

from __future__ import annotations

import importlib.util
import sys
import typing as typ
from pathlib import Path

import pytest

if typ.TYPE_CHECKING:
    from types import ModuleType

SCRIPTS_DIR = Path(__file__).resolve().parents[1] / "scripts"


def _load(name: str, path: Path) -> ModuleType:
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:  # pragma: no cover - defensive guard
        message = f"Unable to load {path} for testing"
        raise RuntimeError(message)
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def dev_version_module(monkeypatch: pytest.MonkeyPatch) -> ModuleType:
    """Load and return the ``dev_version`` module."""
    monkeypatch.syspath_prepend(str(SCRIPTS_DIR))
    return _load("dev_version", SCRIPTS_DIR / "dev_version.py")


@pytest.fixture
def generate_version_module(dev_version_module: ModuleType) -> ModuleType:
    """Load and return the ``generate_version`` entry point."""
    return _load("generate_version", SCRIPTS_DIR / "generate_version.py")
