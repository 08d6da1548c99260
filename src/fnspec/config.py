"""
Centralized configuration for fnspec.

Uses Pydantic BaseSettings for environment variable integration
and validation.

Configuration sources (in order of precedence):
1. Explicit constructor arguments
2. Environment variables (FNSPEC_*)
3. .env file
4. Default values

Example:
    from fnspec.config import get_config

    config = get_config()
    print(config.schema_service)  # From FNSPEC_SCHEMA_SERVICE or default

    # Override at runtime
    config = get_config(auto_instrument=True)
"""

from __future__ import annotations

import logging
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FnSpecConfig(BaseSettings):
    """
    Central configuration for fnspec.

    All settings can be overridden via environment variables
    prefixed with FNSPEC_.

    Example:
        export FNSPEC_AUTO_INSTRUMENT=true
        export FNSPEC_LOG_LEVEL=debug
    """

    model_config = SettingsConfigDict(
        env_prefix="FNSPEC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Logging level for fnspec",
    )

    # Telemetry
    emit_span_events: bool = Field(
        default=True,
        description="Record instrumentation and validation events on the current OTel span",
    )

    # Validation
    schema_service: Literal["pydantic", "jsonschema"] = Field(
        default="pydantic",
        description="Schema service used when none is passed explicitly",
    )
    strict_validation: bool = Field(
        default=True,
        description="Validate pydantic schemas in strict mode (no coercion)",
    )
    max_repr_length: int = Field(
        default=200,
        ge=20,
        description="Truncation limit for offending values in error messages",
    )

    # Toggle
    auto_instrument: bool = Field(
        default=False,
        description="Instrument every registered function from instrument_from_config()",
    )

    def configure_logging(self) -> None:
        """Apply ``log_level`` to the root logger."""
        logging.basicConfig(
            level=getattr(logging, self.log_level.upper()),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


# Global singleton
_config: Optional[FnSpecConfig] = None


def get_config(**overrides) -> FnSpecConfig:
    """
    Get the global configuration instance.

    Creates a singleton on first call. Subsequent calls return
    the same instance unless overrides are provided.

    Args:
        **overrides: Override any config values

    Returns:
        FnSpecConfig instance
    """
    global _config

    if overrides or _config is None:
        _config = FnSpecConfig(**overrides)

    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
