"""
Crash-safe diagnostics for validation failures.

``safe_explain_humanize`` runs the schema service's ``explain`` and
``humanize`` steps and captures any exception either of them raises.  A
failure in the reporting path degrades to a fallback ``Diagnostic``
carrying the raw explain result and the captured exception; it never
replaces the validation failure being reported.

Usage::

    from fnspec.explain import safe_explain_humanize

    diagnostic = safe_explain_humanize(tuple[PositiveInt], (-1,))
    print(diagnostic.message)
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from fnspec.identifiers import FunctionId
from fnspec.schema import ExplainResult, SchemaService, get_schema_service

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    "Unable to generate a human-readable validation message. "
    "See explain_result and failure for the raw details."
)


class Diagnostic(BaseModel):
    """Human-facing description of a validation failure."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True, frozen=True)

    message: str = Field(..., description="Humanized or fallback message")
    function: Optional[FunctionId] = Field(
        None, description="Function whose call or result failed validation"
    )
    value: Any = Field(None, description="The value that failed validation")
    humanized: bool = Field(True, description="False for the fallback form")
    explain_result: Optional[ExplainResult] = Field(
        None, description="Raw explain result (fallback form only)"
    )
    failure: Optional[BaseException] = Field(
        None, description="Exception captured while explaining or humanizing"
    )


def _explain(service: SchemaService, schema: Any, value: Any) -> ExplainResult:
    try:
        explanation = service.explain(schema, value)
    except Exception as exc:
        return ExplainResult(error=exc)
    if isinstance(explanation, ExplainResult):
        return explanation
    return ExplainResult(ok=explanation)


def safe_explain_humanize(
    schema: Any,
    value: Any,
    service: Optional[SchemaService] = None,
    function: Optional[FunctionId] = None,
) -> Diagnostic:
    """Explain why *value* does not conform to *schema*, without raising.

    Args:
        schema: Schema the value was validated against.
        value: The non-conforming value.
        service: Schema service (default: the configured one).
        function: Function the value belongs to, recorded on the result.

    Returns:
        A humanized ``Diagnostic``, or the fallback form when explaining
        or humanizing failed.
    """
    if service is None:
        service = get_schema_service()
    result = _explain(service, schema, value)

    failure: Optional[BaseException] = result.error
    if result.succeeded:
        try:
            message = str(service.humanize(result.ok))
        except Exception as exc:
            failure = exc
        else:
            return Diagnostic(message=message, function=function, value=value)

    logger.warning(
        "Could not humanize validation failure with %s service",
        getattr(service, "name", type(service).__name__),
        exc_info=failure,
    )
    return Diagnostic(
        message=FALLBACK_MESSAGE,
        function=function,
        value=value,
        humanized=False,
        explain_result=result,
        failure=failure,
    )
