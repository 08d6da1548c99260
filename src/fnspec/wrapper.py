"""
Wrapper builder: compose schema validation around a callable.

``build_instrumented`` returns a new callable that checks the argument
tuple before delegating and the return value before handing it back.
The wrapped callable itself is left untouched.

Keyword arguments are folded into the positional tuple using the
wrapped callable's signature, so ``f(1, y=2)`` and ``f(1, 2)`` are
validated as ``(1, 2)``.  Keyword-only arguments are appended as a
trailing ``dict``.
"""

from __future__ import annotations

import functools
import inspect
import logging
from typing import Any, Callable, NoReturn, Optional

from fnspec.errors import ValidationError
from fnspec.explain import safe_explain_humanize
from fnspec.identifiers import FunctionId
from fnspec.otel import emit_validation_failure
from fnspec.schema import SchemaService, get_schema_service

logger = logging.getLogger(__name__)

INSTRUMENTED_ATTR = "__fnspec_id__"


def _signature(f: Callable[..., Any]) -> Optional[inspect.Signature]:
    try:
        return inspect.signature(f)
    except (TypeError, ValueError):
        return None


def _argument_tuple(
    sig: Optional[inspect.Signature], args: tuple, kwargs: dict[str, Any]
) -> tuple:
    if not kwargs:
        return args
    if sig is None:
        return args + (dict(kwargs),)
    try:
        bound = sig.bind(*args, **kwargs)
    except TypeError:
        return args + (dict(kwargs),)
    if bound.kwargs:
        return bound.args + (dict(bound.kwargs),)
    return bound.args


def _conforms(service: SchemaService, schema: Any, value: Any) -> bool:
    try:
        return bool(service.validate(schema, value))
    except Exception:
        logger.debug("Schema service raised during validate", exc_info=True)
        return False


def _reject(
    service: SchemaService,
    schema: Any,
    value: Any,
    function: FunctionId,
    direction: str,
) -> NoReturn:
    error = ValidationError(
        diagnostic=safe_explain_humanize(schema, value, service, function),
        offending_value=value,
        function=function,
        direction=direction,
    )
    emit_validation_failure(error)
    raise error


def _require_schema(schema: Any, kind: str, function: FunctionId) -> None:
    if schema is None:
        raise ValueError(f"{kind} schema for '{function}' must not be None")


def build_input_validator(
    function: FunctionId,
    f: Callable[..., Any],
    args_schema: Any,
    service: Optional[SchemaService] = None,
) -> Callable[..., Any]:
    """Wrap *f* so its argument tuple is validated before every call."""
    _require_schema(args_schema, "Args", function)
    if service is None:
        service = get_schema_service()
    sig = _signature(f)

    @functools.wraps(f)
    def validate_args(*args: Any, **kwargs: Any) -> Any:
        value = _argument_tuple(sig, args, kwargs)
        if not _conforms(service, args_schema, value):
            _reject(service, args_schema, value, function, "args")
        return f(*args, **kwargs)

    setattr(validate_args, INSTRUMENTED_ATTR, function)
    return validate_args


def build_output_validator(
    function: FunctionId,
    f: Callable[..., Any],
    ret_schema: Any,
    service: Optional[SchemaService] = None,
) -> Callable[..., Any]:
    """Wrap *f* so its return value is validated after every call."""
    _require_schema(ret_schema, "Return", function)
    if service is None:
        service = get_schema_service()

    @functools.wraps(f)
    def validate_ret(*args: Any, **kwargs: Any) -> Any:
        result = f(*args, **kwargs)
        if not _conforms(service, ret_schema, result):
            _reject(service, ret_schema, result, function, "ret")
        return result

    setattr(validate_ret, INSTRUMENTED_ATTR, function)
    return validate_ret


def build_instrumented(
    function: FunctionId,
    f: Callable[..., Any],
    args_schema: Any,
    ret_schema: Any,
    service: Optional[SchemaService] = None,
) -> Callable[..., Any]:
    """Input validation around output validation around *f*.

    ``__wrapped__`` on the result points directly at *f*.
    """
    if service is None:
        service = get_schema_service()
    wrapper = build_input_validator(
        function,
        build_output_validator(function, f, ret_schema, service),
        args_schema,
        service,
    )
    wrapper.__wrapped__ = f  # type: ignore[attr-defined]
    return wrapper


def is_wrapper(impl: Any) -> bool:
    """True when *impl* was produced by this module."""
    return getattr(impl, INSTRUMENTED_ATTR, None) is not None
