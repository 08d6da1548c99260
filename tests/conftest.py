"""
Pytest configuration and fixtures for fnspec tests.
"""

from __future__ import annotations

import sys
import types
from typing import Generator

import pytest

from fnspec.config import reset_config
from fnspec.contract import ContractLoader
from fnspec.instrument import reset_instrumenter
from fnspec.registry import get_registry
from fnspec.store import get_store


# ============================================================================
# Global state
# ============================================================================


@pytest.fixture(autouse=True)
def reset_fnspec_state(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Give every test fresh config, registry, store and instrumenter."""
    for var in (
        "FNSPEC_LOG_LEVEL",
        "FNSPEC_EMIT_SPAN_EVENTS",
        "FNSPEC_SCHEMA_SERVICE",
        "FNSPEC_STRICT_VALIDATION",
        "FNSPEC_MAX_REPR_LENGTH",
        "FNSPEC_AUTO_INSTRUMENT",
    ):
        monkeypatch.delenv(var, raising=False)

    def _reset() -> None:
        reset_config()
        reset_instrumenter()
        get_registry().clear()
        get_store().reset()
        ContractLoader.clear_cache()

    _reset()
    yield
    _reset()


# ============================================================================
# Target functions
# ============================================================================


def _identity(x):
    return x


def _negate(x):
    return -x


def _add(x, y=0):
    return x + y


@pytest.fixture
def target_module(monkeypatch: pytest.MonkeyPatch) -> types.ModuleType:
    """An importable module ``fnspec_targets`` holding plain functions."""
    module = types.ModuleType("fnspec_targets")
    module.identity = _identity
    module.negate = _negate
    module.add = _add

    class Counter:
        def bump(self, n):
            return n + 1

    module.Counter = Counter
    monkeypatch.setitem(sys.modules, "fnspec_targets", module)
    return module
