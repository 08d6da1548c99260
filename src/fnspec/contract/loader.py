"""
YAML contract loader with per-path caching for instrumentation contracts.

Usage::

    from fnspec.contract.loader import ContractLoader

    loader = ContractLoader()
    contract = loader.load(Path("billing.fnspec.yaml"))
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import ClassVar

import yaml

from fnspec.contract.schema import InstrumentationContract

logger = logging.getLogger(__name__)


class ContractLoader:
    """Loads and caches instrumentation contracts from YAML files."""

    _cache: ClassVar[dict[str, InstrumentationContract]] = {}

    @classmethod
    def clear_cache(cls) -> None:
        """Clear the contract cache (useful in tests)."""
        cls._cache.clear()

    def load(self, path: Path) -> InstrumentationContract:
        """Load a contract from a YAML file.

        Args:
            path: Path to the YAML contract file.

        Returns:
            Validated ``InstrumentationContract`` instance.

        Raises:
            FileNotFoundError: If the file does not exist.
            TypeError: If the YAML root is not a mapping.
            yaml.YAMLError: If the file contains invalid YAML.
            pydantic.ValidationError: If the YAML does not match the schema.
        """
        key = str(path.resolve())
        if key in self._cache:
            logger.debug("Instrumentation contract cache hit: %s", key)
            return self._cache[key]

        if not path.exists():
            raise FileNotFoundError(f"Contract file not found: {path}")

        with open(path) as fh:
            raw = yaml.safe_load(fh)

        contract = self._validate(raw, str(path))
        self._cache[key] = contract

        logger.debug(
            "Loaded instrumentation contract: functions=%d, service=%s",
            len(contract.functions),
            contract.schema_service,
        )
        return contract

    def load_from_string(self, yaml_str: str) -> InstrumentationContract:
        """Load a contract from a YAML string (convenience for testing)."""
        return self._validate(yaml.safe_load(yaml_str), "<string>")

    @staticmethod
    def _validate(raw: object, source: str) -> InstrumentationContract:
        if not isinstance(raw, dict):
            raise TypeError(
                f"Expected YAML mapping at root of {source}, "
                f"got {type(raw).__name__}"
            )
        return InstrumentationContract.model_validate(raw)
