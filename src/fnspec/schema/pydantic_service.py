"""
Schema service backed by ``pydantic.TypeAdapter``.

A schema is any type pydantic can adapt (``int``, ``tuple[PositiveInt]``,
a ``BaseModel`` subclass, ``Annotated[...]``) or a ready-made
``TypeAdapter``.  Validation runs in strict mode by default so that no
coercion hides a mismatch.

Usage::

    from pydantic import PositiveInt
    from fnspec.schema.pydantic_service import PydanticSchemaService

    service = PydanticSchemaService()
    service.validate(tuple[PositiveInt], (5,))   # True
    errors = service.explain(tuple[PositiveInt], (-1,))
    print(service.humanize(errors))
"""

from __future__ import annotations

import reprlib
from typing import Any, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from fnspec.config import get_config


class PydanticSchemaService:
    """Validates values against pydantic-adaptable types."""

    name = "pydantic"

    def __init__(self, strict: Optional[bool] = None) -> None:
        self._strict = get_config().strict_validation if strict is None else strict
        self._adapters: dict[Any, TypeAdapter] = {}

    @property
    def strict(self) -> bool:
        return self._strict

    def validate(self, schema: Any, value: Any) -> bool:
        try:
            self._adapter(schema).validate_python(value, strict=self._strict)
        except PydanticValidationError:
            return False
        return True

    def explain(self, schema: Any, value: Any) -> list[dict[str, Any]]:
        """Return pydantic's error list, or ``[]`` when *value* conforms."""
        try:
            self._adapter(schema).validate_python(value, strict=self._strict)
        except PydanticValidationError as exc:
            return exc.errors(include_url=False)
        return []

    def humanize(self, explanation: list[dict[str, Any]]) -> str:
        if not explanation:
            return "Value conforms to schema"
        lines = []
        for err in explanation:
            loc = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
            lines.append(
                f"at {loc}: {err['msg']} "
                f"(type={err['type']}, input={reprlib.repr(err.get('input'))})"
            )
        return "\n".join(lines)

    # -- internal --------------------------------------------------------------

    def _adapter(self, schema: Any) -> TypeAdapter:
        if isinstance(schema, TypeAdapter):
            return schema
        try:
            cached = self._adapters.get(schema)
        except TypeError:
            # Unhashable schema objects are adapted on every call.
            return TypeAdapter(schema)
        if cached is None:
            cached = TypeAdapter(schema)
            self._adapters[schema] = cached
        return cached
