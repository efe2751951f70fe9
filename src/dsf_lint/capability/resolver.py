"""Decides which contract, if any, an implementation class satisfies."""

import logging
from dataclasses import dataclass
from enum import Enum

from .contracts import ApiVersion, Contract, ElementKind, contracts_for, describe_contract
from .type_index import TypeIndex

logger = logging.getLogger(__name__)


class CapabilityOutcome(str, Enum):
    SATISFIED = "satisfied"
    NOT_FOUND = "not_found"
    UNSATISFIED = "unsatisfied"


@dataclass(frozen=True)
class CapabilityCheck:
    """Result of checking one implementation class for one element."""
    type_name: str
    version: ApiVersion
    kind: ElementKind
    outcome: CapabilityOutcome
    contract: Contract | None = None

    @property
    def satisfied(self) -> bool:
        return self.outcome == CapabilityOutcome.SATISFIED


class CapabilityResolver:
    """Static-analysis backed "does type T satisfy contract C" answers.

    Lookups go through the project's TypeIndex. Any failure while loading
    type information means "not satisfied"; it is logged, never raised.
    """

    def __init__(self, type_index: TypeIndex):
        self.type_index = type_index

    def type_exists(self, type_name: str | None) -> bool:
        if not type_name or not type_name.strip():
            return False
        try:
            return type_name.strip() in self.type_index
        except Exception as e:
            logger.warning(f"Type lookup for {type_name} failed: {e}")
            return False

    def is_assignable(self, type_name: str, target: str) -> bool:
        """True if type_name equals target or has it among its transitive supertypes."""
        if type_name == target:
            return True
        try:
            return target in self.type_index.supertypes(type_name)
        except Exception as e:
            logger.warning(f"Hierarchy lookup for {type_name} failed: {e}")
            return False

    def satisfies(self, type_name: str, contract: Contract) -> bool:
        return self.is_assignable(type_name, contract.type_name)

    def resolve(self, type_name: str, version: ApiVersion, kind: ElementKind) -> Contract | None:
        """First candidate contract for (version, kind) the type is assignable to."""
        if not self.type_exists(type_name):
            return None
        for contract in contracts_for(version, kind):
            if self.satisfies(type_name, contract):
                return contract
        return None

    def does_not_satisfy(self, type_name: str, version: ApiVersion, kind: ElementKind) -> bool:
        return self.resolve(type_name, version, kind) is None

    def check(self, type_name: str, version: ApiVersion, kind: ElementKind) -> CapabilityCheck:
        """Classify as not found, found but unsatisfied, or satisfied."""
        if not self.type_exists(type_name):
            return CapabilityCheck(type_name, version, kind, CapabilityOutcome.NOT_FOUND)
        contract = self.resolve(type_name, version, kind)
        if contract is None:
            return CapabilityCheck(type_name, version, kind, CapabilityOutcome.UNSATISFIED)
        return CapabilityCheck(type_name, version, kind, CapabilityOutcome.SATISFIED, contract)

    @staticmethod
    def describe_failure(type_name: str, version: ApiVersion, kind: ElementKind) -> str:
        return (f"implementation type {type_name} does not satisfy required contract "
                f"{describe_contract(version, kind)} for kind {kind.value} "
                f"under schema version {version.value}")
