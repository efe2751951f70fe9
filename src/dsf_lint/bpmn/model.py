"""Typed, immutable view of the flow elements of a BPMN file.

The graph is built once per parsed file. Elements whose type no rule set
covers (parallel gateways, script tasks, ...) are not part of it.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from ..query import QueryNode, is_blank

logger = logging.getLogger(__name__)

BPMN_NAMESPACE = "http://www.omg.org/spec/BPMN/20100524/MODEL"
CAMUNDA_NAMESPACE = "http://camunda.org/schema/1.0/bpmn"


class NodeKind(str, Enum):
    """Flow element types the rule sets cover."""
    SERVICE_TASK = "serviceTask"
    SEND_TASK = "sendTask"
    USER_TASK = "userTask"
    RECEIVE_TASK = "receiveTask"
    START_EVENT = "startEvent"
    END_EVENT = "endEvent"
    INTERMEDIATE_THROW_EVENT = "intermediateThrowEvent"
    INTERMEDIATE_CATCH_EVENT = "intermediateCatchEvent"
    BOUNDARY_EVENT = "boundaryEvent"
    EXCLUSIVE_GATEWAY = "exclusiveGateway"
    INCLUSIVE_GATEWAY = "inclusiveGateway"
    EVENT_BASED_GATEWAY = "eventBasedGateway"
    SEQUENCE_FLOW = "sequenceFlow"
    SUB_PROCESS = "subProcess"


class EventDefinitionKind(str, Enum):
    MESSAGE = "messageEventDefinition"
    SIGNAL = "signalEventDefinition"
    TIMER = "timerEventDefinition"
    CONDITIONAL = "conditionalEventDefinition"
    ERROR = "errorEventDefinition"
    OTHER = "other"


_EVENT_DEFINITIONS = {kind.value: kind for kind in EventDefinitionKind if kind != EventDefinitionKind.OTHER}
_OTHER_EVENT_DEFINITIONS = frozenset({
    "escalationEventDefinition", "compensateEventDefinition", "cancelEventDefinition",
    "linkEventDefinition", "terminateEventDefinition",
})
_KINDS_BY_TAG = {kind.value: kind for kind in NodeKind}


@dataclass(frozen=True)
class BpmnNode:
    """One flow element with its configuration."""
    id: str
    kind: NodeKind
    node: QueryNode = field(compare=False, repr=False)
    name: str | None = None
    parent_id: str | None = None
    attributes: Mapping[str, str] = field(default_factory=dict, compare=False, repr=False)
    event_definition: EventDefinitionKind | None = None
    event_definition_node: QueryNode | None = field(default=None, compare=False, repr=False)
    incoming: tuple[str, ...] = ()
    outgoing: tuple[str, ...] = ()
    source_ref: str | None = None
    target_ref: str | None = None
    default_flow: str | None = None
    condition: str | None = None

    @property
    def in_sub_process(self) -> bool:
        return self.parent_id is not None

    def attr(self, name: str) -> str | None:
        """Attribute by local name, e.g. ``class`` for ``camunda:class``."""
        return self.attributes.get(name)

    def extension_elements(self) -> QueryNode | None:
        return self.node.child("extensionElements")


@dataclass(frozen=True)
class BpmnProcess:
    id: str | None
    name: str | None
    nodes: tuple[BpmnNode, ...]
    element_ids: frozenset[str] = frozenset()
    outgoing: Mapping[str, tuple[str, ...]] = field(default_factory=dict, compare=False)

    def get(self, node_id: str | None) -> BpmnNode | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def contains(self, element_id: str | None) -> bool:
        """True for any flow element of the process, covered by a rule set or not."""
        return bool(element_id) and element_id in self.element_ids

    def outgoing_of(self, element_id: str) -> tuple[str, ...]:
        return self.outgoing.get(element_id, ())


@dataclass(frozen=True)
class BpmnError:
    name: str | None
    code: str | None


@dataclass(frozen=True)
class ProcessGraph:
    """All processes of a BPMN file plus its root-level declarations."""
    processes: tuple[BpmnProcess, ...]
    messages: Mapping[str, str | None] = field(default_factory=dict)
    signals: Mapping[str, str | None] = field(default_factory=dict)
    errors: Mapping[str, BpmnError] = field(default_factory=dict)

    def message_name(self, ref: str | None) -> str | None:
        return self.messages.get(ref) if ref else None

    def signal_name(self, ref: str | None) -> str | None:
        return self.signals.get(ref) if ref else None

    def error(self, ref: str | None) -> BpmnError | None:
        return self.errors.get(ref) if ref else None

    @classmethod
    def from_document(cls, root: QueryNode) -> "ProcessGraph":
        """Build the graph from a parsed ``definitions`` element."""
        messages = {m.attr("id"): m.attr("name") for m in root.children("message") if m.attr("id")}
        signals = {s.attr("id"): s.attr("name") for s in root.children("signal") if s.attr("id")}
        errors = {
            e.attr("id"): BpmnError(e.attr("name"), e.attr("errorCode"))
            for e in root.children("error") if e.attr("id")
        }
        processes = tuple(_build_process(p) for p in root.children("process"))
        logger.debug(f"Built process graph with {len(processes)} process(es), "
                     f"{sum(len(p.nodes) for p in processes)} node(s)")
        return cls(processes, MappingProxyType(messages), MappingProxyType(signals), MappingProxyType(errors))


_NON_FLOW_CHILDREN = frozenset({
    "extensionElements", "documentation", "laneSet", "ioSpecification", "dataObject",
    "dataObjectReference", "dataStoreReference", "textAnnotation", "association", "property",
    "multiInstanceLoopCharacteristics", "standardLoopCharacteristics",
})


def _collect(container: QueryNode, parent_id: str | None,
             found: list[tuple[QueryNode, NodeKind, str | None]], element_ids: set[str]) -> None:
    for child in container.children():
        if child.name not in _NON_FLOW_CHILDREN and child.attr("id"):
            element_ids.add(child.attr("id"))
        kind = _KINDS_BY_TAG.get(child.name)
        if kind is not None:
            found.append((child, kind, parent_id))
        if child.name in ("subProcess", "transaction"):
            _collect(child, child.attr("id"), found, element_ids)


def _event_definition(element: QueryNode) -> tuple[EventDefinitionKind | None, QueryNode | None]:
    for child in element.children():
        if child.name in _EVENT_DEFINITIONS:
            return _EVENT_DEFINITIONS[child.name], child
        if child.name in _OTHER_EVENT_DEFINITIONS:
            return EventDefinitionKind.OTHER, child
    return None, None


def _build_process(process: QueryNode) -> BpmnProcess:
    found: list[tuple[QueryNode, NodeKind, str | None]] = []
    element_ids: set[str] = set()
    _collect(process, None, found, element_ids)

    incoming: dict[str, list[str]] = {}
    outgoing: dict[str, list[str]] = {}
    for element, kind, _ in found:
        if kind == NodeKind.SEQUENCE_FLOW:
            flow_id = element.attr("id") or ""
            outgoing.setdefault(element.attr("sourceRef") or "", []).append(flow_id)
            incoming.setdefault(element.attr("targetRef") or "", []).append(flow_id)

    nodes = []
    for element, kind, parent_id in found:
        node_id = element.attr("id") or ""
        definition, definition_node = _event_definition(element)
        condition = element.child("conditionExpression")
        nodes.append(BpmnNode(
            id=node_id,
            kind=kind,
            node=element,
            name=None if is_blank(element.attr("name")) else element.attr("name"),
            parent_id=parent_id,
            attributes=MappingProxyType({k.split("}")[-1]: v for k, v in element.element.attrib.items()}),
            event_definition=definition,
            event_definition_node=definition_node,
            incoming=tuple(incoming.get(node_id, ())),
            outgoing=tuple(outgoing.get(node_id, ())),
            source_ref=element.attr("sourceRef"),
            target_ref=element.attr("targetRef"),
            default_flow=element.attr("default"),
            condition=condition.text if condition is not None else None,
        ))
    return BpmnProcess(
        id=process.attr("id"),
        name=process.attr("name"),
        nodes=tuple(nodes),
        element_ids=frozenset(element_ids),
        outgoing=MappingProxyType({k: tuple(v) for k, v in outgoing.items()}),
    )
