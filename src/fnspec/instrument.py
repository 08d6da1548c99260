"""
Instrumentation controller.

Each registered function is in one of two states:

- **bare**: the live binding holds the original (or unmanaged) callable;
- **instrumented**: the live binding holds a validating wrapper and the
  ``OriginalStore`` holds the original.

``instrument_one`` and ``unstrument_one`` move a single function between
the states and are idempotent.  ``instrument_all`` / ``unstrument_all``
apply them to every registered function, collecting failures instead of
stopping at the first one, and raise ``BatchInstrumentationError`` at the
end if anything failed.

Usage::

    from fnspec import fdef, instrument_all, unstrument_all

    @fdef(args=tuple[PositiveInt], ret=PositiveInt)
    def double(x):
        return 2 * x

    instrument_all()
    ...
    unstrument_all()

    # Or scoped, e.g. inside a test
    with instrumented():
        run_checks()
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Generator, Iterable, Optional

from fnspec.bindings import BindingResolver, ModuleBindingResolver
from fnspec.config import get_config
from fnspec.errors import BatchInstrumentationError, SchemaNotFound, VarNotFound
from fnspec.identifiers import FunctionId
from fnspec.otel import emit_batch_result, emit_binding_change
from fnspec.registry import FunctionRegistry, get_registry
from fnspec.schema import SchemaService, get_schema_service
from fnspec.store import OriginalStore, get_store
from fnspec.wrapper import build_instrumented

logger = logging.getLogger(__name__)


class Instrumenter:
    """Swaps registered functions for validating wrappers, and back.

    All collaborators are injectable; omitted ones default to the
    process-wide registry and store, a ``ModuleBindingResolver`` and the
    configured schema service.
    """

    def __init__(
        self,
        registry: Optional[FunctionRegistry] = None,
        resolver: Optional[BindingResolver] = None,
        store: Optional[OriginalStore] = None,
        schema_service: Optional[SchemaService] = None,
    ) -> None:
        self._registry = registry if registry is not None else get_registry()
        self._resolver = resolver if resolver is not None else ModuleBindingResolver()
        self._store = store if store is not None else get_store()
        self._service = (
            schema_service if schema_service is not None else get_schema_service()
        )

    @property
    def registry(self) -> FunctionRegistry:
        return self._registry

    @property
    def store(self) -> OriginalStore:
        return self._store

    @property
    def schema_service(self) -> SchemaService:
        return self._service

    # -- single function -------------------------------------------------------

    def instrument_one(self, function: FunctionId | str) -> FunctionId:
        """Install a validating wrapper around the original implementation.

        Raises:
            SchemaNotFound: If *function* is not registered.
            VarNotFound: If no live binding exists for *function*.
        """
        fid = FunctionId.coerce(function)
        spec = self._registry.lookup(fid)
        if spec is None:
            raise SchemaNotFound(fid)

        handle = self._resolver.resolve(fid)
        if handle is None:
            raise VarNotFound(fid)

        # Recover the true original so a second call never double-wraps.
        original = self._store.get_or(fid, self._resolver.get(handle))
        wrapper = build_instrumented(
            fid, original, spec.args_schema, spec.ret_schema, self._service
        )
        # The store only records bindings that were actually replaced.
        self._resolver.set(handle, wrapper)
        self._store.capture_if_absent(fid, original)
        emit_binding_change("instrument", fid)
        return fid

    def unstrument_one(self, function: FunctionId | str) -> FunctionId:
        """Restore the original implementation.

        A function that was never instrumented is left as it is.

        Raises:
            VarNotFound: If no live binding exists for *function*.
        """
        fid = FunctionId.coerce(function)
        handle = self._resolver.resolve(fid)
        if handle is None:
            raise VarNotFound(fid)

        original = self._store.get_or(fid, self._resolver.get(handle))
        self._store.clear(fid)
        self._resolver.set(handle, original)
        emit_binding_change("unstrument", fid)
        return fid

    # -- bulk ------------------------------------------------------------------

    def instrument(
        self, functions: Optional[Iterable[FunctionId | str]] = None
    ) -> list[FunctionId]:
        """Instrument *functions* (default: every registered function)."""
        return self._batch("instrument", self.instrument_one, functions)

    def unstrument(
        self, functions: Optional[Iterable[FunctionId | str]] = None
    ) -> list[FunctionId]:
        """Restore *functions* (default: every registered function)."""
        return self._batch("unstrument", self.unstrument_one, functions)

    def instrument_all(self) -> list[FunctionId]:
        return self.instrument()

    def unstrument_all(self) -> list[FunctionId]:
        return self.unstrument()

    @contextmanager
    def instrumented(
        self, functions: Optional[Iterable[FunctionId | str]] = None
    ) -> Generator[list[FunctionId], None, None]:
        """Instrument on enter and restore the same functions on exit.

        Functions that were already instrumented on entry stay instrumented
        on exit.  If instrumenting fails, whatever this block instrumented is
        restored before the error propagates.
        """
        targets = (
            [FunctionId.coerce(f) for f in functions]
            if functions is not None
            else self._registry.all_registered_ids()
        )
        already = {fid for fid in targets if fid in self._store}
        try:
            yield self.instrument(targets)
        finally:
            self.unstrument(
                [fid for fid in targets if fid in self._store and fid not in already]
            )

    # -- inspection ------------------------------------------------------------

    def is_instrumented(self, function: FunctionId | str) -> bool:
        return FunctionId.coerce(function) in self._store

    def instrumented_ids(self) -> list[FunctionId]:
        return self._store.ids()

    # -- internal --------------------------------------------------------------

    def _batch(
        self,
        operation: str,
        apply: Callable[[FunctionId | str], FunctionId],
        functions: Optional[Iterable[FunctionId | str]],
    ) -> list[FunctionId]:
        targets = list(
            functions if functions is not None else self._registry.all_registered_ids()
        )
        done: list[FunctionId] = []
        failures: list[Exception] = []
        for function in targets:
            try:
                done.append(apply(function))
            except Exception as exc:
                logger.debug("%s failed for %s: %s", operation, function, exc)
                failures.append(exc)

        emit_batch_result(operation, len(targets), failures)
        if failures:
            raise BatchInstrumentationError(operation, failures)
        return done


# Global singleton
_instrumenter: Optional[Instrumenter] = None


def get_instrumenter() -> Instrumenter:
    """Get the process-wide instrumenter, creating it on first use."""
    global _instrumenter
    if _instrumenter is None:
        _instrumenter = Instrumenter()
    return _instrumenter


def reset_instrumenter() -> None:
    """Drop the process-wide instrumenter (for testing)."""
    global _instrumenter
    _instrumenter = None


def instrument_one(function: FunctionId | str) -> FunctionId:
    return get_instrumenter().instrument_one(function)


def unstrument_one(function: FunctionId | str) -> FunctionId:
    return get_instrumenter().unstrument_one(function)


def instrument(functions: Optional[Iterable[FunctionId | str]] = None) -> list[FunctionId]:
    return get_instrumenter().instrument(functions)


def unstrument(functions: Optional[Iterable[FunctionId | str]] = None) -> list[FunctionId]:
    return get_instrumenter().unstrument(functions)


def instrument_all() -> list[FunctionId]:
    return get_instrumenter().instrument_all()


def unstrument_all() -> list[FunctionId]:
    return get_instrumenter().unstrument_all()


def instrumented(
    functions: Optional[Iterable[FunctionId | str]] = None,
) -> Any:
    """Context manager form of ``instrument``/``unstrument``."""
    return get_instrumenter().instrumented(functions)


def instrument_from_config() -> list[FunctionId]:
    """Instrument everything registered when ``FNSPEC_AUTO_INSTRUMENT`` is set.

    Returns the instrumented ids, or ``[]`` when the toggle is off.
    """
    if not get_config().auto_instrument:
        logger.debug("Auto-instrumentation disabled")
        return []
    return instrument_all()
