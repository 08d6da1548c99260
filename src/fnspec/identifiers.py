"""
Function identifiers.

A ``FunctionId`` names one callable as a ``(namespace, name)`` pair.  For
the default module binding resolver the namespace is an importable module
path and the name an attribute path inside it::

    from fnspec.identifiers import FunctionId

    fid = FunctionId(namespace="mypkg.math", name="double")
    fid == FunctionId.parse("mypkg.math:double")  # True
"""

from __future__ import annotations

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field


class FunctionId(BaseModel):
    """Immutable, hashable ``(namespace, name)`` key for one callable."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    namespace: str = Field(..., min_length=1, description="Owning module path")
    name: str = Field(..., min_length=1, description="Attribute path in the namespace")

    def __init__(self, namespace: str, name: str, **kwargs: Any) -> None:
        super().__init__(namespace=namespace, name=name, **kwargs)

    @classmethod
    def parse(cls, text: str) -> FunctionId:
        """Parse ``"namespace:name"`` or ``"namespace/name"``.

        Raises:
            ValueError: If *text* has no separator or an empty part.
        """
        for sep in (":", "/"):
            if sep in text:
                namespace, _, name = text.partition(sep)
                if namespace and name:
                    return cls(namespace, name)
        raise ValueError(
            f"Invalid function identifier '{text}'. "
            "Expected 'namespace:name' or 'namespace/name'."
        )

    @classmethod
    def of(cls, func: Callable[..., Any]) -> FunctionId:
        """Build the identifier a module-level function is reachable under."""
        return cls(func.__module__, func.__qualname__)

    @classmethod
    def coerce(cls, value: FunctionId | str) -> FunctionId:
        if isinstance(value, FunctionId):
            return value
        return cls.parse(value)

    def __str__(self) -> str:
        return f"{self.namespace}:{self.name}"
