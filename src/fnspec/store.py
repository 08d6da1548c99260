"""
Store of original (pre-instrumentation) implementations.

The store is the single source of truth for restoring a function.  An
entry is written on first instrumentation and removed on
unstrumentation; ``capture_if_absent`` never overwrites an existing entry,
so re-instrumenting cannot replace the true original with a wrapper.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from fnspec.identifiers import FunctionId


class OriginalStore:
    """Thread-safe ``FunctionId`` -> original implementation map."""

    def __init__(self) -> None:
        self._originals: dict[FunctionId, Callable[..., Any]] = {}
        self._lock = threading.Lock()

    def capture_if_absent(
        self, function: FunctionId, impl: Callable[..., Any]
    ) -> Callable[..., Any]:
        """Store *impl* unless an original is already held; return the stored one."""
        with self._lock:
            return self._originals.setdefault(function, impl)

    def get_or(self, function: FunctionId, default: Any = None) -> Any:
        with self._lock:
            return self._originals.get(function, default)

    def clear(self, function: FunctionId) -> None:
        with self._lock:
            self._originals.pop(function, None)

    def ids(self) -> list[FunctionId]:
        with self._lock:
            return list(self._originals)

    def reset(self) -> None:
        """Forget every original (useful in tests)."""
        with self._lock:
            self._originals.clear()

    def __contains__(self, function: object) -> bool:
        with self._lock:
            return function in self._originals

    def __len__(self) -> int:
        with self._lock:
            return len(self._originals)


# Global singleton
_store: Optional[OriginalStore] = None


def get_store() -> OriginalStore:
    """Get the process-wide store, creating it on first use."""
    global _store
    if _store is None:
        _store = OriginalStore()
    return _store
