"""Unit tests for the BPMN process graph model."""

import pytest

from dsf_lint.bpmn import EventDefinitionKind, NodeKind, ProcessGraph
from dsf_lint.query import parse_xml


@pytest.fixture
def graph(samples):
    return ProcessGraph.from_document(parse_xml(samples.ping_bpmn))


class TestProcessGraph:
    """Test graph construction from a definitions document."""

    def test_processes_and_declarations(self, graph):
        assert [p.id for p in graph.processes] == ["dsfdev_ping"]
        assert graph.message_name("Message_Start") == "startPing"
        assert graph.message_name(None) is None

    def test_nodes_in_document_order(self, graph):
        process = graph.processes[0]
        assert [(n.id, n.kind) for n in process.nodes] == [
            ("StartEvent", NodeKind.START_EVENT),
            ("PingTask", NodeKind.SERVICE_TASK),
            ("EndEvent", NodeKind.END_EVENT),
            ("Flow_1", NodeKind.SEQUENCE_FLOW),
            ("Flow_2", NodeKind.SEQUENCE_FLOW),
        ]

    def test_node_details(self, graph):
        process = graph.processes[0]
        start = process.get("StartEvent")
        task = process.get("PingTask")

        assert start.event_definition == EventDefinitionKind.MESSAGE
        assert start.outgoing == ("Flow_1",)
        assert task.attr("class") == "org.example.PingTask"
        assert task.incoming == ("Flow_1",)
        assert process.get("Flow_2").source_ref == "PingTask"
        assert process.outgoing_of("PingTask") == ("Flow_2",)

    def test_sub_processes_and_uncovered_elements(self, samples):
        graph = ProcessGraph.from_document(parse_xml(samples.bpmn("""
          <bpmn:process id="dsfdev_nested">
            <bpmn:parallelGateway id="Fork"/>
            <bpmn:subProcess id="Sub">
              <bpmn:startEvent id="SubStart"/>
              <bpmn:endEvent id="SubEnd"><bpmn:terminateEventDefinition/></bpmn:endEvent>
            </bpmn:subProcess>
          </bpmn:process>""")))
        process = graph.processes[0]

        assert process.get("Fork") is None
        assert process.contains("Fork")
        assert process.get("SubStart").parent_id == "Sub"
        assert process.get("SubStart").in_sub_process
        assert process.get("SubEnd").event_definition == EventDefinitionKind.OTHER
        assert not process.get("Sub").in_sub_process

    def test_errors_and_signals(self, samples):
        graph = ProcessGraph.from_document(parse_xml(samples.bpmn(
            '<bpmn:process id="dsfdev_x"/>',
            '<bpmn:error id="Error_1" name="failed" errorCode="ping-failed"/>'
            '<bpmn:signal id="Signal_1" name="stop"/>',
        )))
        assert graph.error("Error_1").code == "ping-failed"
        assert graph.signal_name("Signal_1") == "stop"
        assert graph.error("missing") is None
