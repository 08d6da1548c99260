"""
fnspec CLI - check instrumentation contracts against importable code.

Commands:
    fnspec check    Instrument every function in a contract, report, restore
    fnspec list     List the functions a contract declares

Usage::

    fnspec check billing.fnspec.yaml
    fnspec --log-level debug check billing.fnspec.yaml
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError as ContractValidationError

from fnspec.config import get_config
from fnspec.contract import ContractLoader
from fnspec.errors import BatchInstrumentationError
from fnspec.instrument import Instrumenter
from fnspec.registry import FunctionRegistry
from fnspec.schema import get_schema_service
from fnspec.store import OriginalStore

_CONTRACT_ARG = click.argument(
    "contract_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)


@click.group()
@click.version_option(package_name="fnspec")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default=None,
    help="Override FNSPEC_LOG_LEVEL",
)
def main(log_level: Optional[str]):
    """fnspec - runtime schema checks for registered functions."""
    config = get_config(log_level=log_level) if log_level else get_config()
    config.configure_logging()


@main.command("check")
@_CONTRACT_ARG
def check_cmd(contract_path: Path):
    """Instrument every function in CONTRACT_PATH, report, then restore.

    Verifies that each declared function resolves to a live binding.
    An invalid contract, including a malformed JSON Schema, fails before
    anything is instrumented.
    Exits with status 1 if any function fails.

    Example:
        fnspec check ./contracts/billing.fnspec.yaml
    """
    try:
        contract = ContractLoader().load(contract_path)
    except ContractValidationError as exc:
        click.echo(f"FAIL  {contract_path}: invalid contract\n{exc}")
        sys.exit(1)
    registry = FunctionRegistry()
    contract.register_into(registry)
    instrumenter = Instrumenter(
        registry=registry,
        store=OriginalStore(),
        schema_service=get_schema_service(contract.schema_service),
    )

    failures: list[Exception] = []
    try:
        instrumenter.instrument_all()
    except BatchInstrumentationError as exc:
        failures = exc.failures

    try:
        for fid in instrumenter.instrumented_ids():
            click.echo(f"OK    {fid}")
        for failure in failures:
            click.echo(f"FAIL  {getattr(failure, 'function', '?')}: {failure}")
    finally:
        instrumenter.unstrument(instrumenter.instrumented_ids())

    total = len(contract.functions)
    click.echo(f"{total - len(failures)}/{total} function(s) instrumentable")
    if failures:
        sys.exit(1)


@main.command("list")
@_CONTRACT_ARG
def list_cmd(contract_path: Path):
    """List the function identifiers declared in CONTRACT_PATH."""
    contract = ContractLoader().load(contract_path)
    for fn in contract.functions:
        line = str(fn.function_id)
        if fn.description:
            line += f"  # {fn.description}"
        click.echo(line)


if __name__ == "__main__":
    main()
