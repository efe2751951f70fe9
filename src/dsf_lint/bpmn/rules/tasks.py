"""Service, send, user and receive task rules."""

from ...capability import ApiVersion, ElementKind
from ...capability import contracts as c
from ...query import is_blank
from ...validation import Severity
from .common import NodeScope, check_contract, check_name
from .fields import check_field_injections
from .listeners import check_execution_listeners, check_task_listeners
from .messages import check_message_name

EXTERNAL_FORM_PREFIXES = ("external:", "http://", "https://")


def _implementation_class(scope: NodeScope, label: str, kind: str) -> str | None:
    """The ``camunda:class`` of the node if it is set and resolvable."""
    class_name = scope.node.attr("class")
    if is_blank(class_name):
        scope.error(f"{kind}_class_empty", f"{label} has no implementation class.")
        return None
    class_name = class_name.strip()
    if not scope.capabilities.type_exists(class_name):
        scope.error(f"{kind}_class_not_found", f"{label} implementation class '{class_name}' not found.")
        return None
    return class_name


def _check_v1_base_class(scope: NodeScope, class_name: str, base_class: str, label: str, kind: str) -> None:
    simple = base_class.rsplit(".", 1)[-1]
    scope.check(
        scope.capabilities.is_assignable(class_name, base_class), Severity.WARN, kind,
        f"{label} implementation class '{class_name}' does not extend '{simple}'.",
        f"{label} implementation class '{class_name}' extends {simple}.",
    )


def check_service_task(scope: NodeScope) -> None:
    check_name(scope, "ServiceTask", Severity.ERROR, "service_task_name_empty")

    class_name = _implementation_class(scope, "ServiceTask", "service_task")
    if class_name is None:
        return
    if scope.api_version == ApiVersion.V1:
        _check_v1_base_class(scope, class_name, c.V1_ABSTRACT_SERVICE_DELEGATE, "ServiceTask",
                             "service_task_abstract_service_delegate")
    check_contract(scope, class_name, ElementKind.SERVICE_TASK, "ServiceTask", kind="service_task_contract")
    check_execution_listeners(scope)


def check_send_task(scope: NodeScope) -> None:
    check_name(scope, "SendTask")

    class_name = _implementation_class(scope, "SendTask", "send_task")
    if class_name is not None:
        if scope.api_version == ApiVersion.V1:
            _check_v1_base_class(scope, class_name, c.V1_ABSTRACT_TASK_MESSAGE_SEND, "SendTask",
                                 "send_task_abstract_task_message_send")
        check_contract(scope, class_name, ElementKind.SEND_TASK, "SendTask", kind="send_task_contract")

    check_field_injections(scope)
    check_execution_listeners(scope)


def check_user_task(scope: NodeScope) -> None:
    check_name(scope, "User Task", Severity.ERROR, "user_task_name_empty")

    form_key = scope.node.attr("formKey")
    if is_blank(form_key):
        scope.error("user_task_form_key_empty", "User Task has no formKey.")
    elif not form_key.startswith(EXTERNAL_FORM_PREFIXES):
        scope.error("user_task_form_key_not_external",
                    f"User Task formKey '{form_key}' is not an external form "
                    f"(expected one of {', '.join(EXTERNAL_FORM_PREFIXES)}).")
    else:
        scope.success("user_task_form_key_not_external", f"User Task formKey is valid: '{form_key}'")
        scope.check(
            scope.context.resolver.questionnaire_for(form_key) is not None,
            Severity.ERROR, "user_task_questionnaire",
            f"User Task questionnaire not found for formKey: {form_key}",
            f"Questionnaire exists for formKey: '{form_key}'",
        )

    check_task_listeners(scope)
    check_execution_listeners(scope)


def check_receive_task(scope: NodeScope) -> None:
    check_name(scope, "ReceiveTask")
    check_message_name(scope, "ReceiveTask")
    check_execution_listeners(scope)
