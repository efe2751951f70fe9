"""Message names and their FHIR counterparts."""

from ...query import QueryNode, is_blank
from ...validation import Severity
from .common import NodeScope


def message_name_of(scope: NodeScope, definition: QueryNode | None = None) -> str | None:
    """Name of the message referenced by a message event definition or receive task."""
    holder = definition if definition is not None else scope.node.node
    return scope.graph.message_name(holder.attr("messageRef"))


def check_message_references(scope: NodeScope, message_name: str) -> None:
    """A message name must be declared by an ActivityDefinition and a StructureDefinition."""
    resolver = scope.context.resolver
    scope.check(
        resolver.activity_definition_with_message(message_name) is not None,
        Severity.ERROR, "message_activity_definition",
        f"No ActivityDefinition found for messageName: {message_name}",
        f"ActivityDefinition found for messageName: '{message_name}'",
    )
    scope.check(
        resolver.structure_definition_containing(message_name) is not None,
        Severity.ERROR, "message_structure_definition",
        f"StructureDefinition [{message_name}] not found.",
        f"StructureDefinition found for messageName: '{message_name}'",
    )


def check_message_name(scope: NodeScope, label: str, definition: QueryNode | None = None,
                       cross_check: bool = True) -> str | None:
    """ERROR for a missing message name, then the cross-document checks."""
    message_name = message_name_of(scope, definition)
    if is_blank(message_name):
        scope.error("message_name_empty", f"{label} has no message name.")
        return None
    scope.success("message_name_empty", f"Message name is not empty: '{message_name}'")
    if cross_check:
        check_message_references(scope, message_name)
    return message_name
