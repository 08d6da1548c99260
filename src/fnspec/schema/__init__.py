"""
Schema services used to validate instrumented calls.

Public API::

    from fnspec.schema import (
        SchemaService,
        ExplainResult,
        PydanticSchemaService,
        JsonSchemaService,
        get_schema_service,
    )
"""

from __future__ import annotations

from typing import Optional

from fnspec.config import get_config
from fnspec.schema.base import ExplainResult, SchemaService
from fnspec.schema.jsonschema_service import JsonSchemaService
from fnspec.schema.pydantic_service import PydanticSchemaService

_SERVICES = {
    PydanticSchemaService.name: PydanticSchemaService,
    JsonSchemaService.name: JsonSchemaService,
}


def get_schema_service(name: Optional[str] = None) -> SchemaService:
    """Create the schema service called *name* (default: from config).

    Raises:
        ValueError: If *name* is not a known service.
    """
    name = name or get_config().schema_service
    try:
        service_cls = _SERVICES[name]
    except KeyError:
        raise ValueError(
            f"Unknown schema service '{name}'. Valid names: {sorted(_SERVICES)}"
        ) from None
    return service_cls()


__all__ = [
    "SchemaService",
    "ExplainResult",
    "PydanticSchemaService",
    "JsonSchemaService",
    "get_schema_service",
]
