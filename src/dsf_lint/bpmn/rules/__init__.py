"""BPMN rule sets, one handler function per flow element kind."""

from .common import NodeScope, contains_placeholder
from .events import (
    check_boundary_event,
    check_end_event,
    check_intermediate_catch_event,
    check_intermediate_throw_event,
    check_start_event,
)
from .flows import check_branching_gateway, check_event_based_gateway, check_sequence_flow, check_sub_process
from .tasks import check_receive_task, check_send_task, check_service_task, check_user_task

__all__ = [
    "NodeScope",
    "check_boundary_event",
    "check_branching_gateway",
    "check_end_event",
    "check_event_based_gateway",
    "check_intermediate_catch_event",
    "check_intermediate_throw_event",
    "check_receive_task",
    "check_send_task",
    "check_sequence_flow",
    "check_service_task",
    "check_start_event",
    "check_sub_process",
    "check_user_task",
    "contains_placeholder",
]
