"""Execution and task listener checks."""

from ...capability import ApiVersion, ElementKind
from ...capability import contracts as c
from ...query import QueryNode, is_blank
from ...validation import Severity
from .common import NodeScope, camunda_children, contains_placeholder, check_contract

TASK_OUTPUT_FIELDS = ("taskOutputSystem", "taskOutputCode", "taskOutputVersion")
_INPUT_PARAMETERS = ("practitionerRole", "practitioners")


def check_execution_listeners(scope: NodeScope, container: QueryNode | None = None) -> None:
    """Each ``camunda:executionListener`` class must exist and fit the listener contract.

    Listeners without a class (expression or script listeners) are skipped.
    """
    container = container if container is not None else scope.node.extension_elements()
    for listener in camunda_children(container, "executionListener"):
        class_name = listener.attr("class")
        if is_blank(class_name):
            continue
        check_contract(scope, class_name.strip(), ElementKind.EXECUTION_LISTENER, "Execution listener",
                       kind="execution_listener_contract")


def check_task_listeners(scope: NodeScope) -> None:
    for listener in camunda_children(scope.node.extension_elements(), "taskListener"):
        _check_task_listener(scope, listener)


def _check_task_listener(scope: NodeScope, listener: QueryNode) -> None:
    class_name = listener.attr("class")
    if is_blank(class_name):
        scope.error("task_listener_class_missing", "UserTask listener does not declare a class attribute.")
        return
    class_name = class_name.strip()
    scope.success("task_listener_class_missing", f"UserTask listener declares a class attribute: '{class_name}'")

    if not scope.capabilities.type_exists(class_name):
        scope.error("task_listener_class_not_found", f"UserTask listener class '{class_name}' not found.")
        return
    scope.success("task_listener_class_not_found",
                  f"UserTask listener class '{class_name}' was found in the project")

    version = scope.api_version
    if version == ApiVersion.V2:
        default_class, interface = c.V2_DEFAULT_USER_TASK_LISTENER, c.V2_USER_TASK_LISTENER.type_name
    elif version == ApiVersion.V1:
        default_class, interface = c.V1_DEFAULT_USER_TASK_LISTENER, c.TASK_LISTENER.type_name
    else:
        scope.info("task_listener_inheritance_skipped",
                   f"Plugin API version unknown; inheritance of '{class_name}' not checked.")
        return

    extends_default = scope.capabilities.is_assignable(class_name, default_class)
    implements_interface = scope.capabilities.is_assignable(class_name, interface)
    default_simple = default_class.rsplit(".", 1)[-1]
    interface_simple = interface.rsplit(".", 1)[-1]
    if extends_default or implements_interface:
        relation = f"extends {default_simple}" if extends_default else f"implements {interface_simple}"
        scope.success("task_listener_inheritance", f"UserTask listener '{class_name}' {relation}")
    else:
        scope.error("task_listener_inheritance",
                    f"UserTask listener '{class_name}' does not extend '{default_simple}' "
                    f"or implement '{interface_simple}'.")

    if version == ApiVersion.V2:
        _check_input_parameters(scope, listener, Severity.ERROR if extends_default else Severity.WARN)
        _check_task_output_fields(scope, listener)


def _input_parameter_value(parameter: QueryNode) -> str | None:
    """Text of the parameter, a nested ``camunda:string`` or the first list value."""
    nested = parameter.children()
    if not nested:
        text = parameter.text
        return text or None
    for child in nested:
        if child.name == "string":
            return child.text or None
        if child.name == "list":
            return next((v.text for v in child.children("value") if v.text), "")
    return parameter.text or None


def _check_input_parameters(scope: NodeScope, listener: QueryNode, severity: Severity) -> None:
    input_output = listener.child("inputOutput")
    if input_output is None:
        return
    for name in _INPUT_PARAMETERS:
        parameter = next((p for p in input_output.children("inputParameter") if p.attr("name") == name), None)
        if parameter is None:
            continue
        kind = f"task_listener_{name.lower()}_empty"
        scope.check(
            not is_blank(_input_parameter_value(parameter)), severity, kind,
            f"Task listener input parameter '{name}' has no value.",
            f"Task listener input parameter '{name}' has a non-empty value",
        )


def _field_value(field: QueryNode) -> str | None:
    value = field.attr("stringValue")
    if not is_blank(value):
        return value.strip()
    string = field.child("string")
    if string is not None and string.text:
        return string.text
    return None


def _check_task_output_fields(scope: NodeScope, listener: QueryNode) -> None:
    fields = listener.children("field") + camunda_children(listener.child("extensionElements"), "field")
    values = {name: None for name in TASK_OUTPUT_FIELDS}
    for field in fields:
        if field.attr("name") in values:
            values[field.attr("name")] = _field_value(field)

    present = [not is_blank(v) for v in values.values()]
    if any(present) and not all(present):
        scope.error("task_listener_task_output_incomplete",
                    "taskOutputSystem, taskOutputCode and taskOutputVersion must be set together.")
        return
    if not all(present):
        return
    scope.success("task_listener_task_output_incomplete",
                  "All taskOutput fields (taskOutputSystem, taskOutputCode, taskOutputVersion) are set")

    system, code, version = (values[name] for name in TASK_OUTPUT_FIELDS)
    codes = scope.context.codes
    scope.check(
        codes.contains_system(system), Severity.ERROR, "task_listener_task_output_system",
        f"taskOutputSystem '{system}' references unknown CodeSystem.",
        f"taskOutputSystem '{system}' references a known CodeSystem",
    )
    scope.check(
        not codes.is_unknown(system, code), Severity.ERROR, "task_listener_task_output_code",
        f"taskOutputCode '{code}' is unknown in CodeSystem '{system}'.",
        f"taskOutputCode '{code}' is valid in CodeSystem '{system}'",
    )
    scope.check(
        contains_placeholder(version), Severity.WARN, "task_listener_task_output_version",
        f"taskOutputVersion '{version}' does not contain a placeholder.",
        f"taskOutputVersion contains placeholder: '{version}'",
    )
