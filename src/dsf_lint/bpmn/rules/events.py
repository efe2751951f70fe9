"""Start, end, intermediate and boundary event rules.

Each event node is checked according to its first event definition
(message, signal, timer, conditional, error); events without a definition
get the generic checks.
"""

from ...capability import ElementKind
from ...query import is_blank
from ...validation import Severity
from ..model import EventDefinitionKind
from .common import NodeScope, check_contract, check_name, contains_placeholder
from .fields import check_field_injections
from .listeners import check_execution_listeners
from .messages import check_message_name, message_name_of


def _definition_attr(scope: NodeScope, name: str) -> str | None:
    definition = scope.node.event_definition_node
    return definition.attr(name) if definition is not None else None


def _is_true(value: str | None) -> bool:
    return value is not None and value.strip().lower() == "true"


# ==================== shared checks ====================

def check_signal(scope: NodeScope, label: str) -> None:
    check_name(scope, label)
    signal_name = scope.graph.signal_name(_definition_attr(scope, "signalRef"))
    scope.check(
        not is_blank(signal_name), Severity.ERROR, "signal_empty",
        f"Signal is empty in {label}",
        f"Signal is present with name: '{signal_name}'",
    )


def check_message_send_event(scope: NodeScope, label: str, element_kind: ElementKind) -> None:
    """Message end and intermediate throw events send a Task via an implementation class."""
    check_name(scope, label)

    class_name = _definition_attr(scope, "class") or scope.node.attr("class")
    if is_blank(class_name):
        scope.error("message_send_event_class_empty", f"{label} has no implementation class.")
    else:
        check_contract(scope, class_name.strip(), element_kind, label, kind="message_send_event_contract")

    check_field_injections(scope)


def check_timer(scope: NodeScope) -> None:
    definition = scope.node.event_definition_node
    values = {
        name: (child.text if child is not None else "")
        for name, child in ((n, definition.child(n)) for n in ("timeDate", "timeCycle", "timeDuration"))
    }
    if not any(values.values()):
        scope.error("timer_type_empty", "Timer type is empty (no timeDate, timeCycle, or timeDuration)")
        return
    scope.success("timer_type_empty", "Timer type is provided.")

    if values["timeDate"]:
        scope.info("timer_fixed_date",
                   "Timer type is a fixed date/time (timeDate); please verify if this is intended")
        return
    timer_value = values["timeCycle"] or values["timeDuration"]
    scope.check(
        contains_placeholder(timer_value), Severity.WARN, "timer_value_placeholder",
        "Timer value appears fixed (no placeholder found)",
        f"Timer value contains a valid placeholder: '{timer_value}'",
    )


def check_conditional(scope: NodeScope) -> None:
    label = "Conditional Intermediate Catch Event"
    check_name(scope, label)

    scope.check(
        not is_blank(_definition_attr(scope, "variableName")), Severity.ERROR, "conditional_variable_name_empty",
        f"{label} variable name is empty",
        f"{label} variable name is provided: '{_definition_attr(scope, 'variableName')}'",
    )
    scope.check(
        not is_blank(_definition_attr(scope, "variableEvents")), Severity.ERROR,
        "conditional_variable_events_empty",
        f"{label} variableEvents is empty",
        f"{label} variableEvents is provided: '{_definition_attr(scope, 'variableEvents')}'",
    )

    condition = scope.node.event_definition_node.child("condition")
    expression = condition.text if condition is not None else ""
    condition_type = _definition_attr(scope, "conditionType")
    if is_blank(condition_type):
        if expression:
            condition_type = "expression"
            scope.info("conditional_condition_type_assumed",
                       "Condition type assumed to be 'expression' as a condition expression is provided.")
        else:
            scope.error("conditional_condition_type_empty", f"{label} condition type is empty")
    elif condition_type.lower() != "expression":
        scope.info("conditional_condition_type_not_expression",
                   f"{label} condition type is not 'expression': {condition_type}")
    else:
        scope.success("conditional_condition_type_empty", f"{label} condition type is 'expression'")

    if condition_type is not None and condition_type.lower() == "expression":
        scope.check(
            bool(expression), Severity.ERROR, "conditional_expression_empty",
            f"{label} expression is empty",
            f"Condition expression is provided: '{expression}'",
        )


# ==================== per node kind ====================

def check_start_event(scope: NodeScope) -> None:
    if scope.node.event_definition == EventDefinitionKind.MESSAGE:
        check_name(scope, "Start event")
        check_message_name(scope, "Message Start Event", scope.node.event_definition_node)
        check_field_injections(scope)
    elif scope.node.in_sub_process:
        scope.info("start_event_in_sub_process", "Start event inside a SubProcess; a name is not required.")
    else:
        check_name(scope, "Generic start event", kind="start_event_name_empty")
    check_execution_listeners(scope)


def check_end_event(scope: NodeScope) -> None:
    definition = scope.node.event_definition
    if definition == EventDefinitionKind.MESSAGE:
        check_message_send_event(scope, "Message End Event", ElementKind.MESSAGE_END_EVENT)
    elif definition == EventDefinitionKind.SIGNAL:
        check_signal(scope, "Signal End Event")
    elif definition == EventDefinitionKind.ERROR:
        check_name(scope, "Error End Event")
        error = scope.graph.error(_definition_attr(scope, "errorRef"))
        scope.check(
            error is not None and not is_blank(error.name), Severity.ERROR, "error_end_event_error_name",
            "Error End Event references no error with a name.",
            f"Error name is provided: '{error.name if error else None}'",
        )
        scope.check(
            error is not None and not is_blank(error.code), Severity.ERROR, "error_end_event_error_code",
            "Error End Event references no error with an error code.",
            f"Error code is provided: '{error.code if error else None}'",
        )
    elif scope.node.in_sub_process:
        scope.check(
            _is_true(scope.node.attr("asyncAfter")), Severity.WARN, "end_event_async_after",
            "End Event inside a SubProcess should have asyncAfter=true",
            "End Event inside a SubProcess has asyncAfter=true",
        )
    else:
        check_name(scope, "End event", kind="end_event_name_empty")
    check_execution_listeners(scope)


def check_intermediate_throw_event(scope: NodeScope) -> None:
    definition = scope.node.event_definition
    if definition == EventDefinitionKind.MESSAGE:
        check_message_send_event(scope, "Message Intermediate Throw Event",
                                 ElementKind.MESSAGE_INTERMEDIATE_THROW_EVENT)
        message_name = message_name_of(scope, scope.node.event_definition_node)
        if message_name is not None:
            scope.info("message_throw_event_has_message",
                       f"Message Intermediate Throw Event has a message with name: {message_name}; "
                       f"the Task is sent by the implementation class")
    elif definition == EventDefinitionKind.SIGNAL:
        check_signal(scope, "Signal Intermediate Throw Event")
    else:
        check_name(scope, "Intermediate Throw Event")
    check_execution_listeners(scope)


def check_intermediate_catch_event(scope: NodeScope) -> None:
    definition = scope.node.event_definition
    if definition == EventDefinitionKind.MESSAGE:
        check_name(scope, "Message Intermediate Catch Event")
        check_message_name(scope, "Message Intermediate Catch Event", scope.node.event_definition_node)
    elif definition == EventDefinitionKind.TIMER:
        check_name(scope, "Timer Intermediate Catch Event")
        check_timer(scope)
    elif definition == EventDefinitionKind.SIGNAL:
        check_signal(scope, "Signal Intermediate Catch Event")
    elif definition == EventDefinitionKind.CONDITIONAL:
        check_conditional(scope)
    else:
        check_name(scope, "Intermediate Catch Event")
    check_execution_listeners(scope)


def check_boundary_event(scope: NodeScope) -> None:
    definition = scope.node.event_definition
    if definition == EventDefinitionKind.MESSAGE:
        check_name(scope, "Message Boundary Event")
        check_message_name(scope, "Message Boundary Event", scope.node.event_definition_node)
    elif definition == EventDefinitionKind.ERROR:
        _check_error_boundary_event(scope)
    elif definition == EventDefinitionKind.TIMER:
        check_name(scope, "Timer Boundary Event")
        check_timer(scope)
    else:
        check_name(scope, "Boundary Event")
    check_execution_listeners(scope)


def _check_error_boundary_event(scope: NodeScope) -> None:
    check_name(scope, "BoundaryEvent")
    error = scope.graph.error(_definition_attr(scope, "errorRef"))
    if error is not None:
        scope.check(
            not is_blank(error.name), Severity.WARN, "error_boundary_event_error_name",
            "Error Boundary Event references an error without a name.",
            f"Error name is provided: '{error.name}'",
        )
        scope.check(
            not is_blank(error.code), Severity.WARN, "error_boundary_event_error_code",
            "Error Boundary Event references an error without an error code.",
            f"Error code is provided: '{error.code}'",
        )
    variable = _definition_attr(scope, "errorCodeVariable")
    scope.check(
        not is_blank(variable), Severity.WARN, "error_boundary_event_error_code_variable",
        "Error Boundary Event has no errorCodeVariable.",
        f"errorCodeVariable is provided: '{variable}'",
    )
