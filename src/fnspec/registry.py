"""
Function registry: maps a ``FunctionId`` to its argument and return schemas.

The host application registers functions before instrumenting them,
either explicitly or with the ``fdef`` decorator::

    from pydantic import PositiveInt
    from fnspec.registry import fdef

    @fdef(args=tuple[PositiveInt], ret=PositiveInt)
    def double(x):
        return 2 * x
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

from fnspec.identifiers import FunctionId

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class FunctionSpec(BaseModel):
    """Declared schemas for one function."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True, frozen=True)

    args_schema: Any
    ret_schema: Any


class FunctionRegistry:
    """Thread-safe mapping of ``FunctionId`` to ``FunctionSpec``.

    Enumeration order is registration order.
    """

    def __init__(self) -> None:
        self._specs: dict[FunctionId, FunctionSpec] = {}
        self._lock = threading.Lock()

    def register(
        self, function: FunctionId | str, *, args: Any, ret: Any
    ) -> FunctionId:
        """Register (or replace) the schemas for *function*.

        Raises:
            ValueError: If either schema is ``None``.
        """
        fid = FunctionId.coerce(function)
        if args is None or ret is None:
            raise ValueError(f"Both args and ret schemas are required for '{fid}'")
        with self._lock:
            replaced = fid in self._specs
            self._specs[fid] = FunctionSpec(args_schema=args, ret_schema=ret)
        logger.debug("%s function spec: %s", "Replaced" if replaced else "Registered", fid)
        return fid

    def unregister(self, function: FunctionId | str) -> None:
        fid = FunctionId.coerce(function)
        with self._lock:
            self._specs.pop(fid, None)

    def lookup(self, function: FunctionId) -> Optional[FunctionSpec]:
        with self._lock:
            return self._specs.get(function)

    def all_registered_ids(self) -> list[FunctionId]:
        with self._lock:
            return list(self._specs)

    def clear(self) -> None:
        """Remove every registration (useful in tests)."""
        with self._lock:
            self._specs.clear()

    def __contains__(self, function: object) -> bool:
        with self._lock:
            return function in self._specs

    def __len__(self) -> int:
        with self._lock:
            return len(self._specs)


# Global singleton
_registry: Optional[FunctionRegistry] = None


def get_registry() -> FunctionRegistry:
    """Get the process-wide registry, creating it on first use."""
    global _registry
    if _registry is None:
        _registry = FunctionRegistry()
    return _registry


def fdef(
    *, args: Any, ret: Any, registry: Optional[FunctionRegistry] = None
) -> Callable[[F], F]:
    """Decorator registering a module-level function's schemas.

    The function is registered under ``FunctionId.of(func)`` and returned
    unchanged; nothing is validated until it is instrumented.
    """

    def decorator(func: F) -> F:
        target = registry if registry is not None else get_registry()
        target.register(FunctionId.of(func), args=args, ret=ret)
        return func

    return decorator
