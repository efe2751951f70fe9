"""Gateway, sequence flow and sub-process rules."""

from ...validation import Severity
from ..model import NodeKind
from .common import NodeScope
from .listeners import check_execution_listeners

_BRANCHING_GATEWAYS = {
    NodeKind.EXCLUSIVE_GATEWAY: "ExclusiveGateway",
    NodeKind.INCLUSIVE_GATEWAY: "InclusiveGateway",
}


def check_branching_gateway(scope: NodeScope) -> None:
    """Exclusive and inclusive gateways that split the flow need a name."""
    label = "Exclusive Gateway" if scope.node.kind == NodeKind.EXCLUSIVE_GATEWAY else "Inclusive Gateway"
    if len(scope.node.outgoing) > 1:
        scope.check(
            scope.node.name is not None, Severity.WARN, "gateway_name_empty",
            f"{label} has multiple outgoing flows but name is empty.",
            f"{label} has multiple outgoing flows and a non-empty name: '{scope.node.name}'",
        )
    check_execution_listeners(scope)


def check_event_based_gateway(scope: NodeScope) -> None:
    check_execution_listeners(scope)


def check_sequence_flow(scope: NodeScope) -> None:
    flow = scope.node
    if not scope.process.contains(flow.source_ref):
        scope.error("sequence_flow_source_missing", "Sequence flow has no source node.")
        return

    source = scope.process.get(flow.source_ref)
    if len(scope.process.outgoing_of(flow.source_ref)) > 1:
        scope.check(
            flow.name is not None, Severity.WARN, "sequence_flow_name_empty",
            "Sequence flow originates from a source with multiple outgoing flows and name is empty.",
            f"Sequence flow originates from a source with multiple outgoing flows "
            f"and has a valid name: '{flow.name}'",
        )
        gateway_type = _BRANCHING_GATEWAYS.get(source.kind) if source is not None else None
        if gateway_type is not None:
            _check_gateway_flow_condition(scope, source.default_flow == flow.id, gateway_type)
    check_execution_listeners(scope)


def _check_gateway_flow_condition(scope: NodeScope, is_default: bool, gateway_type: str) -> None:
    has_condition = scope.node.condition is not None
    if is_default:
        scope.check(
            not has_condition, Severity.WARN, "default_flow_condition",
            f"Default sequence flow from {gateway_type} should not have a condition expression.",
            f"Default sequence flow from {gateway_type} correctly has no condition expression.",
        )
    else:
        scope.check(
            has_condition, Severity.WARN, "flow_condition_missing",
            f"Non-default sequence flow from {gateway_type} is missing a condition expression.",
            f"Non-default sequence flow from {gateway_type} has a valid condition expression.",
        )


def check_sub_process(scope: NodeScope) -> None:
    loop = scope.node.node.child("multiInstanceLoopCharacteristics")
    if loop is not None:
        async_before = loop.attr("asyncBefore") or scope.node.attr("asyncBefore")
        scope.check(
            (async_before or "").strip().lower() == "true", Severity.WARN, "sub_process_async_before",
            "SubProcess has multi-instance but is not asyncBefore=true",
            "SubProcess with multi-instance loop characteristics is correctly configured with asyncBefore=true",
        )
    check_execution_listeners(scope)
