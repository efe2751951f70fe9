"""BPMN process graph model, rule sets and router."""

from .model import BpmnNode, BpmnProcess, EventDefinitionKind, NodeKind, ProcessGraph
from .router import BpmnRouter, PROCESS_ID_PATTERN

__all__ = [
    "BpmnNode",
    "BpmnProcess",
    "BpmnRouter",
    "EventDefinitionKind",
    "NodeKind",
    "PROCESS_ID_PATTERN",
    "ProcessGraph",
]
