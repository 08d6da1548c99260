"""
Instrumentation contracts: functions and their JSON Schemas declared in YAML.

Public API::

    from fnspec.contract import (
        FunctionContract,
        InstrumentationContract,
        ContractLoader,
    )
"""

from fnspec.contract.loader import ContractLoader
from fnspec.contract.schema import FunctionContract, InstrumentationContract

__all__ = [
    "FunctionContract",
    "InstrumentationContract",
    "ContractLoader",
]
