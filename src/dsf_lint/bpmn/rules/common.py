"""Helpers shared by the BPMN rule sets."""

import re
from dataclasses import dataclass

from ...capability import ApiVersion, CapabilityOutcome, CapabilityResolver, ElementKind
from ...context import ValidationContext
from ...query import QueryNode, is_blank
from ...validation import ItemCollector, Severity
from ..model import BpmnNode, BpmnProcess, ProcessGraph

PLACEHOLDER_PATTERN = re.compile(r"(?:\$|#)\{[^}]+\}")


def contains_placeholder(value: str | None) -> bool:
    return value is not None and PLACEHOLDER_PATTERN.search(value) is not None


@dataclass
class NodeScope:
    """The node under validation and everything its checks may consult."""
    node: BpmnNode
    process: BpmnProcess
    graph: ProcessGraph
    context: ValidationContext
    items: ItemCollector

    @property
    def element_id(self) -> str:
        return self.node.id

    @property
    def api_version(self) -> ApiVersion:
        return self.context.api_version

    @property
    def capabilities(self) -> CapabilityResolver:
        return self.context.capabilities

    def error(self, kind: str, message: str) -> None:
        self.items.error(kind, message, self.element_id)

    def warn(self, kind: str, message: str) -> None:
        self.items.warn(kind, message, self.element_id)

    def info(self, kind: str, message: str) -> None:
        self.items.info(kind, message, self.element_id)

    def success(self, kind: str, message: str) -> None:
        self.items.success(kind, message, self.element_id)

    def check(self, ok: bool, severity: Severity, kind: str, failure: str, passed: str) -> bool:
        return self.items.check(ok, severity, kind, failure, passed, self.element_id)


def check_name(scope: NodeScope, label: str, severity: Severity = Severity.WARN,
               kind: str = "name_empty") -> bool:
    name = scope.node.name
    return scope.check(
        not is_blank(name), severity, kind,
        f"'{scope.element_id}' has no name",
        f"{label} has a non-empty name: '{name}'",
    )


def check_class_exists(scope: NodeScope, class_name: str, label: str, kind: str) -> bool:
    """ERROR when the implementation class cannot be found in the project."""
    return scope.check(
        scope.capabilities.type_exists(class_name), Severity.ERROR, kind,
        f"{label} implementation class '{class_name}' not found.",
        f"{label} implementation class '{class_name}' found.",
    )


def check_contract(scope: NodeScope, class_name: str, element_kind: ElementKind, label: str,
                   kind: str = "implementation_contract") -> bool:
    """Check an existing class against the contract of its element kind.

    Emits a "not found" item or a contract item, never both for one class.
    """
    version = scope.api_version
    check = scope.capabilities.check(class_name, version, element_kind)
    if check.outcome == CapabilityOutcome.NOT_FOUND:
        scope.error(f"{kind}_class_not_found", f"{label} implementation class '{class_name}' not found.")
        return False
    if version == ApiVersion.UNKNOWN:
        scope.info(f"{kind}_skipped",
                   f"Plugin API version unknown; contract of '{class_name}' not checked.")
        return True
    if check.outcome == CapabilityOutcome.UNSATISFIED:
        scope.error(kind, CapabilityResolver.describe_failure(class_name, version, element_kind))
        return False
    scope.success(kind, f"{label} implementation class '{class_name}' implements {check.contract.simple_name}.")
    return True


def camunda_children(container: QueryNode | None, name: str) -> list[QueryNode]:
    """Children of an extensionElements-like container by local name."""
    if container is None:
        return []
    return container.children(name)
