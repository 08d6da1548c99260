"""
OTel span event emission helpers for instrumentation.

Follows the log + optional OTel span event pattern.  All functions are
guarded by ``_HAS_OTEL`` so they degrade gracefully when OTel is not
installed, and by ``FnSpecConfig.emit_span_events``.

Usage::

    from fnspec.otel import emit_binding_change, emit_validation_failure

    emit_binding_change("instrument", fid)
    emit_validation_failure(error)
"""

from __future__ import annotations

import logging
from typing import Sequence

from fnspec.config import get_config
from fnspec.errors import ValidationError
from fnspec.identifiers import FunctionId

try:
    from opentelemetry import trace as otel_trace

    _HAS_OTEL = True
except ImportError:  # pragma: no cover
    _HAS_OTEL = False

logger = logging.getLogger(__name__)


def _add_span_event(name: str, attributes: dict[str, str | int | float | bool]) -> None:
    """Add an event to the current OTel span if available."""
    if not _HAS_OTEL or not get_config().emit_span_events:
        return
    span = otel_trace.get_current_span()
    if span and span.is_recording():
        span.add_event(name=name, attributes=attributes)


def emit_binding_change(operation: str, function: FunctionId) -> None:
    """Emit a span event after a binding was instrumented or restored.

    Event name: ``fnspec.instrument`` or ``fnspec.unstrument``.
    """
    logger.debug("%s: %s", operation, function)
    _add_span_event(
        f"fnspec.{operation}",
        {
            "fnspec.function": str(function),
            "fnspec.namespace": function.namespace,
        },
    )


def emit_validation_failure(error: ValidationError) -> None:
    """Emit a span event for a rejected call.

    Event name: ``fnspec.validation.failed``
    """
    logger.warning(
        "Validation FAILED: function=%s direction=%s humanized=%s",
        error.function,
        error.direction,
        error.diagnostic.humanized,
    )
    _add_span_event(
        "fnspec.validation.failed",
        {
            "fnspec.function": str(error.function),
            "fnspec.direction": error.direction,
            "fnspec.humanized": error.diagnostic.humanized,
            "fnspec.message": error.diagnostic.message,
        },
    )


def emit_batch_result(
    operation: str, total: int, failures: Sequence[Exception]
) -> None:
    """Emit a span event summarising a bulk instrument/unstrument pass.

    Event name: ``fnspec.batch.complete``
    """
    attrs: dict[str, str | int | float | bool] = {
        "fnspec.operation": operation,
        "fnspec.total": total,
        "fnspec.failed": len(failures),
        "fnspec.passed": not failures,
    }

    # Include first 3 failed function ids for quick filtering
    for i, failure in enumerate(failures[:3]):
        attrs[f"fnspec.failure.{i}"] = str(getattr(failure, "function", failure))

    if failures:
        logger.warning(
            "%s FAILED for %d/%d function(s)",
            operation,
            len(failures),
            total,
        )
    else:
        logger.info("%s: %d function(s)", operation, total)

    _add_span_event("fnspec.batch.complete", attrs)
