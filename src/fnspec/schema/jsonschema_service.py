"""
Schema service backed by ``jsonschema`` (Draft 2020-12).

A schema is a JSON Schema mapping, which is what instrumentation
contracts written in YAML declare.  Argument lists arrive as Python
tuples, so the ``array`` type accepts tuples as well as lists.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import jsonschema
from jsonschema import Draft202012Validator, validators

logger = logging.getLogger(__name__)

_TupleArrayValidator = validators.extend(
    Draft202012Validator,
    type_checker=Draft202012Validator.TYPE_CHECKER.redefine(
        "array", lambda checker, instance: isinstance(instance, (list, tuple))
    ),
)


def _json_pointer(path: list[str | int]) -> str:
    """Convert a jsonschema path deque to a JSON pointer string."""
    if not path:
        return "/"
    return "/" + "/".join(str(p) for p in path)


class JsonSchemaService:
    """Validates values against JSON Schema mappings."""

    name = "jsonschema"

    def __init__(self) -> None:
        self._validators: dict[str, Any] = {}

    def validate(self, schema: dict[str, Any], value: Any) -> bool:
        return self._validator(schema).is_valid(value)

    def explain(
        self, schema: dict[str, Any], value: Any
    ) -> list[jsonschema.ValidationError]:
        """Return every validation error for *value* (empty when it conforms)."""
        return list(self._validator(schema).iter_errors(value))

    def humanize(self, explanation: list[jsonschema.ValidationError]) -> str:
        if not explanation:
            return "Value conforms to schema"
        return "\n".join(
            f"{_json_pointer(list(error.absolute_path))}: {error.message}"
            for error in explanation
        )

    # -- internal --------------------------------------------------------------

    def _validator(self, schema: dict[str, Any]) -> Any:
        key = json.dumps(schema, sort_keys=True, default=repr)
        if key not in self._validators:
            _TupleArrayValidator.check_schema(schema)
            self._validators[key] = _TupleArrayValidator(schema)
            logger.debug("Compiled JSON schema validator (%d cached)", len(self._validators))
        return self._validators[key]
