"""
fnspec - Toggleable runtime schema checks for registered functions.

Functions are registered with schemas for their argument tuple and their
return value.  Instrumenting a function rebinds it to a wrapper that
validates every call; unstrumenting restores the original.  Call sites do
not change.

Example usage:
    from pydantic import PositiveInt
    import fnspec

    @fnspec.fdef(args=tuple[PositiveInt], ret=PositiveInt)
    def double(x):
        return 2 * x

    fnspec.instrument_all()
    double(-1)  # raises fnspec.ValidationError with a readable diagnostic
    fnspec.unstrument_all()
"""

from fnspec.errors import (
    BatchInstrumentationError,
    FnSpecError,
    SchemaNotFound,
    ValidationError,
    VarNotFound,
)
from fnspec.explain import Diagnostic, safe_explain_humanize
from fnspec.identifiers import FunctionId
from fnspec.instrument import (
    Instrumenter,
    get_instrumenter,
    instrument,
    instrument_all,
    instrument_from_config,
    instrument_one,
    instrumented,
    reset_instrumenter,
    unstrument,
    unstrument_all,
    unstrument_one,
)
from fnspec.registry import FunctionRegistry, FunctionSpec, fdef, get_registry
from fnspec.store import OriginalStore, get_store
from fnspec.wrapper import (
    build_input_validator,
    build_instrumented,
    build_output_validator,
)

__version__ = "0.1.0"
__all__ = [
    # Identifiers
    "FunctionId",
    # Errors
    "FnSpecError",
    "SchemaNotFound",
    "VarNotFound",
    "ValidationError",
    "BatchInstrumentationError",
    # Diagnostics
    "Diagnostic",
    "safe_explain_humanize",
    # Registry
    "FunctionRegistry",
    "FunctionSpec",
    "fdef",
    "get_registry",
    # Store
    "OriginalStore",
    "get_store",
    # Wrapper builder
    "build_input_validator",
    "build_output_validator",
    "build_instrumented",
    # Controller
    "Instrumenter",
    "get_instrumenter",
    "reset_instrumenter",
    "instrument_one",
    "unstrument_one",
    "instrument",
    "unstrument",
    "instrument_all",
    "unstrument_all",
    "instrumented",
    "instrument_from_config",
    "__version__",
]
