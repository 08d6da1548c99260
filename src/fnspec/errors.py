"""
Exceptions raised by instrumentation and by instrumented calls.

``SchemaNotFound`` and ``VarNotFound`` are fatal to a single
instrument/unstrument operation.  ``ValidationError`` is raised by a
wrapped call whose arguments or return value do not conform.
``BatchInstrumentationError`` aggregates the failures of a bulk pass.
"""

from __future__ import annotations

import reprlib
from typing import TYPE_CHECKING, Any, Sequence

from fnspec.config import get_config
from fnspec.identifiers import FunctionId

if TYPE_CHECKING:
    from fnspec.explain import Diagnostic


def _short_repr(value: Any) -> str:
    limit = get_config().max_repr_length
    r = reprlib.Repr()
    r.maxstring = limit
    r.maxother = limit
    r.maxlong = limit
    return r.repr(value)


class FnSpecError(Exception):
    """Base class for all fnspec errors."""


class SchemaNotFound(FnSpecError):
    """Raised when the registry has no schema for a function."""

    def __init__(self, function: FunctionId) -> None:
        self.function = function
        super().__init__(f"No schema registered for '{function}'")


class VarNotFound(FnSpecError):
    """Raised when no live binding can be resolved for a function."""

    def __init__(self, function: FunctionId) -> None:
        self.function = function
        super().__init__(f"Cannot resolve a binding for '{function}'")


class ValidationError(FnSpecError):
    """Raised by an instrumented call when input or output fails its schema.

    Attributes:
        diagnostic: Best-effort description of the failure.
        offending_value: The argument tuple (``direction == "args"``) or
            the return value (``direction == "ret"``).
        function: The instrumented function.
        direction: ``"args"`` or ``"ret"``.
    """

    def __init__(
        self,
        diagnostic: Diagnostic,
        offending_value: Any,
        function: FunctionId,
        direction: str,
    ) -> None:
        self.diagnostic = diagnostic
        self.offending_value = offending_value
        self.function = function
        self.direction = direction
        super().__init__(
            f"Call to '{function}' failed {direction} validation "
            f"with {_short_repr(offending_value)}:\n{diagnostic.message}"
        )


class BatchInstrumentationError(FnSpecError):
    """Raised after a bulk pass in which one or more functions failed."""

    def __init__(self, operation: str, failures: Sequence[Exception]) -> None:
        self.operation = operation
        self.failures = list(failures)
        names = ", ".join(
            str(getattr(f, "function", None) or type(f).__name__)
            for f in self.failures
        )
        super().__init__(
            f"{operation} failed for {len(self.failures)} function(s): [{names}]"
        )
