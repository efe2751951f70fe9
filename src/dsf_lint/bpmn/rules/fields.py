"""Field injections of message sending elements.

DSF message send activities receive the target ``profile``, the
``messageName`` and the ``instantiatesCanonical`` of the Task to send as
``camunda:field`` injections. Values must be string literals; when the
profile resolves, the StructureDefinition and ActivityDefinition it points
to are cross-checked.
"""

from dataclasses import dataclass
from enum import Enum

from ...query import QueryNode, is_blank
from ...resolver.facts import fixed_value
from ...validation import Severity
from .common import NodeScope, camunda_children, contains_placeholder

INSTANTIATES_CANONICAL_ELEMENT = "Task.instantiatesCanonical"
MESSAGE_NAME_ELEMENT = "Task.input:message-name.value[x]"


class FieldValueType(str, Enum):
    STRING = "string"
    EXPRESSION = "expression"


@dataclass(frozen=True)
class FieldValue:
    type: FieldValueType
    value: str


def read_field_value(field: QueryNode) -> FieldValue | None:
    """Value of a ``camunda:field`` from its attributes or nested elements."""
    literal = field.attr("stringValue")
    if not is_blank(literal):
        return FieldValue(FieldValueType.STRING, literal.strip())
    expression = field.attr("expression")
    if not is_blank(expression):
        return FieldValue(FieldValueType.EXPRESSION, expression.strip())
    for child in field.children():
        if child.name == "string":
            return FieldValue(FieldValueType.STRING, child.text)
        if child.name == "expression":
            return FieldValue(FieldValueType.EXPRESSION, child.text)
    return None


def injected_fields(scope: NodeScope) -> list[QueryNode]:
    """Fields on the element itself and inside its message event definition."""
    fields = camunda_children(scope.node.extension_elements(), "field")
    definition = scope.node.event_definition_node
    if definition is not None and definition.name == "messageEventDefinition":
        fields += camunda_children(definition.child("extensionElements"), "field")
    return fields


def check_field_injections(scope: NodeScope) -> None:
    fields = injected_fields(scope)
    if not fields:
        return

    resolver = scope.context.resolver
    profile = message_name = instantiates = None
    profile_found = False

    for field in fields:
        name = field.attr("name")
        value = read_field_value(field)
        if value is not None and value.type == FieldValueType.EXPRESSION:
            scope.error("field_injection_not_string_literal",
                        f"Field injection '{name}' is provided as expression, expected string literal")
            continue
        if value is not None:
            scope.success("field_injection_not_string_literal",
                          f"Field injection '{name}' provided as string literal")
        literal = value.value if value is not None else None

        if name == "profile":
            profile = literal
            profile_found = _check_profile(scope, literal)
        elif name == "messageName":
            if is_blank(literal):
                scope.error("field_injection_message_name_empty", "Field injection messageName is empty")
            else:
                message_name = literal
                scope.success("field_injection_message_name_empty",
                              f"Field 'messageName' is valid with value: '{literal}'")
        elif name == "instantiatesCanonical":
            instantiates = literal
            _check_instantiates_canonical(scope, literal)
        else:
            scope.warn("field_injection_unknown", f"Unknown field injection: {name}")

    if profile_found:
        entry = resolver.structure_definition_for(profile)
        if entry is not None and entry.document is not None:
            _cross_check_profile(scope, entry.document, instantiates)
        _cross_check_activity_definition(scope, instantiates, message_name)


def _check_profile(scope: NodeScope, literal: str | None) -> bool:
    if is_blank(literal):
        scope.error("field_injection_profile_empty", "Field injection profile is empty")
        return False
    scope.success("field_injection_profile_empty", f"Profile field is provided with value: '{literal}'")
    scope.check(
        contains_placeholder(literal), Severity.WARN, "field_injection_profile_placeholder",
        f"Profile field does not contain version placeholder: {literal}",
        f"Profile field contains a version placeholder: '{literal}'",
    )
    return scope.check(
        scope.context.resolver.structure_definition_for(literal) is not None,
        Severity.WARN, "field_injection_profile_structure_definition",
        f"StructureDefinition for the profile: [{literal}] not found.",
        f"StructureDefinition found for profile: '{literal}'",
    )


def _check_instantiates_canonical(scope: NodeScope, literal: str | None) -> None:
    if is_blank(literal):
        scope.error("field_injection_instantiates_canonical_empty",
                    "Field injection instantiatesCanonical is empty")
        return
    scope.check(
        contains_placeholder(literal), Severity.WARN, "field_injection_instantiates_canonical_placeholder",
        "instantiatesCanonical does not contain version placeholder",
        f"instantiatesCanonical field is valid with value: '{literal}'",
    )


def _cross_check_profile(scope: NodeScope, structure_definition: QueryNode, instantiates: str | None) -> None:
    if not is_blank(instantiates):
        scope.check(
            fixed_value(structure_definition, INSTANTIATES_CANONICAL_ELEMENT, "Canonical") is not None,
            Severity.ERROR, "profile_fixed_canonical",
            "StructureDefinition lacks <fixedCanonical> for Task.instantiatesCanonical",
            "StructureDefinition contains valid <fixedCanonical>.",
        )
    scope.check(
        fixed_value(structure_definition, MESSAGE_NAME_ELEMENT, "String") is not None,
        Severity.ERROR, "profile_fixed_message_name",
        "StructureDefinition has no valid <fixedString> for message-name.",
        "StructureDefinition contains valid <fixedString>.",
    )


def _cross_check_activity_definition(scope: NodeScope, instantiates: str | None,
                                     message_name: str | None) -> None:
    if is_blank(instantiates):
        return
    resolver = scope.context.resolver
    found = scope.check(
        resolver.activity_definition_for(instantiates) is not None,
        Severity.WARN, "instantiates_canonical_activity_definition",
        f"No ActivityDefinition found for instantiatesCanonical {instantiates}",
        f"ActivityDefinition exists for instantiatesCanonical: '{instantiates}'.",
    )
    if found and not is_blank(message_name):
        scope.check(
            resolver.activity_definition_with_message(message_name) is not None,
            Severity.ERROR, "activity_definition_message_name",
            f"ActivityDefinition does not contain message name '{message_name}'.",
            f"ActivityDefinition contains message name '{message_name}'.",
        )
