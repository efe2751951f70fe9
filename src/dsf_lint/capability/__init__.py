"""Capability resolution for implementation classes referenced from BPMN."""

from .contracts import ApiVersion, Contract, ElementKind, contracts_for, describe_contract
from .resolver import CapabilityCheck, CapabilityOutcome, CapabilityResolver
from .type_index import TypeIndex
from .version import detect_api_version

__all__ = [
    "ApiVersion",
    "CapabilityCheck",
    "CapabilityOutcome",
    "CapabilityResolver",
    "Contract",
    "ElementKind",
    "TypeIndex",
    "contracts_for",
    "describe_contract",
    "detect_api_version",
]
