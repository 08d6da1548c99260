"""
Pydantic v2 models for the instrumentation contract YAML format.

A contract lists functions by identifier together with JSON Schemas for
their argument tuple and return value.

All models use ``extra="forbid"`` to reject unknown keys at parse time.

Usage::

    from fnspec.contract.schema import InstrumentationContract
    import yaml

    with open("billing.fnspec.yaml") as fh:
        raw = yaml.safe_load(fh)
    contract = InstrumentationContract.model_validate(raw)
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from jsonschema import Draft202012Validator, SchemaError
from pydantic import BaseModel, ConfigDict, Field, field_validator

from fnspec.identifiers import FunctionId
from fnspec.registry import FunctionRegistry


class FunctionContract(BaseModel):
    """Schemas declared for a single function."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1, description="Function identifier, 'namespace:name'")
    args: dict[str, Any] = Field(..., description="JSON Schema for the argument tuple")
    ret: dict[str, Any] = Field(..., description="JSON Schema for the return value")
    description: Optional[str] = Field(None)

    @field_validator("id")
    @classmethod
    def _parseable_id(cls, v: str) -> str:
        FunctionId.parse(v)
        return v

    @field_validator("args", "ret")
    @classmethod
    def _valid_json_schema(cls, v: dict[str, Any]) -> dict[str, Any]:
        try:
            Draft202012Validator.check_schema(v)
        except SchemaError as exc:
            raise ValueError(f"Invalid JSON Schema: {exc.message}") from exc
        return v

    @property
    def function_id(self) -> FunctionId:
        return FunctionId.parse(self.id)


class InstrumentationContract(BaseModel):
    """Root model for an instrumentation contract YAML file."""

    model_config = ConfigDict(extra="forbid")

    schema_version: str = Field(
        ..., min_length=1, description="Contract schema version (e.g. 0.1.0)"
    )
    contract_type: Literal["function_instrumentation"] = Field(
        ..., description="Must be 'function_instrumentation'"
    )
    schema_service: Literal["jsonschema"] = Field(
        "jsonschema", description="Schema service the declared schemas are written for"
    )
    functions: list[FunctionContract] = Field(
        ..., description="Functions governed by this contract"
    )
    description: Optional[str] = Field(None)

    @field_validator("functions")
    @classmethod
    def _unique_ids(cls, v: list[FunctionContract]) -> list[FunctionContract]:
        seen: set[FunctionId] = set()
        for fn in v:
            if fn.function_id in seen:
                raise ValueError(f"Duplicate function id: {fn.id}")
            seen.add(fn.function_id)
        return v

    def function_ids(self) -> list[FunctionId]:
        return [fn.function_id for fn in self.functions]

    def register_into(self, registry: FunctionRegistry) -> list[FunctionId]:
        """Register every declared function; returns their ids in order."""
        return [
            registry.register(fn.function_id, args=fn.args, ret=fn.ret)
            for fn in self.functions
        ]
