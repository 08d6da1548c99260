"""
Schema service protocol and explain result model.

A schema service answers three questions about a schema and a value:
does it conform (``validate``), why not (``explain``), and how to say so
to a human (``humanize``).  ``explain`` and ``humanize`` may raise on
pathological input; callers on the call path go through
``fnspec.explain.safe_explain_humanize`` instead of using them directly.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, model_validator


@runtime_checkable
class SchemaService(Protocol):
    """Structural validation backend used by instrumented functions."""

    name: str

    def validate(self, schema: Any, value: Any) -> bool:
        """Return True when *value* conforms to *schema*."""
        ...

    def explain(self, schema: Any, value: Any) -> Any:
        """Return a structural explanation of why *value* does not conform."""
        ...

    def humanize(self, explanation: Any) -> str:
        """Render an explanation as a human-readable summary."""
        ...


class ExplainResult(BaseModel):
    """Outcome of an explain attempt: exactly one of ``ok`` or ``error``."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True, frozen=True)

    ok: Any = None
    error: Optional[BaseException] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> ExplainResult:
        present = self.model_fields_set & {"ok", "error"}
        if len(present) != 1:
            raise ValueError("ExplainResult requires exactly one of 'ok' or 'error'")
        if "error" in present and self.error is None:
            raise ValueError("ExplainResult.error must be an exception")
        return self

    @property
    def succeeded(self) -> bool:
        return "ok" in self.model_fields_set
