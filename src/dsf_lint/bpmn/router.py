"""Dispatch of BPMN flow elements to their rule sets."""

import logging
import re
from collections.abc import Callable, Mapping

from ..context import ValidationContext
from ..validation import ItemCollector, ValidationItem
from . import rules
from .model import NodeKind, ProcessGraph

logger = logging.getLogger(__name__)

PROCESS_ID_PATTERN = re.compile(r"^[a-zA-Z0-9-]+_[a-zA-Z0-9-]+$")

NodeHandler = Callable[[rules.NodeScope], None]

DEFAULT_HANDLERS: Mapping[NodeKind, NodeHandler] = {
    NodeKind.SERVICE_TASK: rules.check_service_task,
    NodeKind.SEND_TASK: rules.check_send_task,
    NodeKind.USER_TASK: rules.check_user_task,
    NodeKind.RECEIVE_TASK: rules.check_receive_task,
    NodeKind.START_EVENT: rules.check_start_event,
    NodeKind.END_EVENT: rules.check_end_event,
    NodeKind.INTERMEDIATE_THROW_EVENT: rules.check_intermediate_throw_event,
    NodeKind.INTERMEDIATE_CATCH_EVENT: rules.check_intermediate_catch_event,
    NodeKind.BOUNDARY_EVENT: rules.check_boundary_event,
    NodeKind.EXCLUSIVE_GATEWAY: rules.check_branching_gateway,
    NodeKind.INCLUSIVE_GATEWAY: rules.check_branching_gateway,
    NodeKind.EVENT_BASED_GATEWAY: rules.check_event_based_gateway,
    NodeKind.SEQUENCE_FLOW: rules.check_sequence_flow,
    NodeKind.SUB_PROCESS: rules.check_sub_process,
}


class BpmnRouter:
    """Visits every node of a ProcessGraph and delegates it by NodeKind.

    The registry must cover every NodeKind; a missing handler is a
    construction error, not a silently skipped element.
    """

    def __init__(self, handlers: Mapping[NodeKind, NodeHandler] | None = None):
        handlers = dict(DEFAULT_HANDLERS if handlers is None else handlers)
        missing = [kind.value for kind in NodeKind if kind not in handlers]
        if missing:
            raise ValueError(f"No BPMN handler registered for: {', '.join(missing)}")
        self._handlers = handlers

    def handler_for(self, kind: NodeKind) -> NodeHandler:
        return self._handlers[kind]

    def route(self, graph: ProcessGraph, context: ValidationContext, source: str | None = None) -> list[ValidationItem]:
        """Validate all processes of a graph.

        Args:
            graph: Parsed process graph
            context: Run-wide validation context
            source: File name used in the produced items

        Returns:
            Items of every evaluated check, in document order
        """
        collector = ItemCollector(file=source)
        if not graph.processes:
            self._check_process_id(None, collector)

        for process in graph.processes:
            items = collector.for_process(process.id)
            self._check_process_id(process.id, items)
            for node in process.nodes:
                scope = rules.NodeScope(node, process, graph, context, items)
                self._handlers[node.kind](scope)

        logger.debug(f"Routed {sum(len(p.nodes) for p in graph.processes)} BPMN node(s) from {source}: "
                     f"{len(collector.items)} item(s)")
        return collector.items

    @staticmethod
    def _check_process_id(process_id: str | None, items: ItemCollector) -> None:
        if not process_id or not process_id.strip():
            items.error("process_id_empty", "BPMN Process ID is empty or not defined.", "Process")
        elif not PROCESS_ID_PATTERN.match(process_id):
            items.error(
                "process_id_pattern",
                f"Process ID '{process_id}' does not match the required pattern "
                f"'{PROCESS_ID_PATTERN.pattern}'. Expected format: domain_processname "
                f"(e.g., testorg_myprocess, dsf-dev_download-allowlist).",
                process_id,
            )
        else:
            items.success("process_id_pattern", f"Process ID '{process_id}' matches the required pattern.",
                          process_id)
