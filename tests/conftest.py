"""Shared fixtures: throwaway DSF plugin projects built in tmp_path."""

import struct
from pathlib import Path
from types import SimpleNamespace

import pytest

from dsf_lint.capability.contracts import V1_PLUGIN_DEFINITION, V2_PLUGIN_DEFINITION
from dsf_lint.codes import BPMN_MESSAGE, PROCESS_AUTHORIZATION, READ_ACCESS_TAG
from dsf_lint.config import LintConfig
from dsf_lint.context import ValidationContext
from dsf_lint.query import QueryNode, parse_xml

BPMN_NS = "http://www.omg.org/spec/BPMN/20100524/MODEL"
CAMUNDA_NS = "http://camunda.org/schema/1.0/bpmn"
FHIR_NS = "http://hl7.org/fhir"

ORGANIZATION_IDENTIFIER = "http://dsf.dev/sid/organization-identifier"
PROCESS_URL = "http://dsf.dev/bpe/Process/ping"
TASK_PROFILE = "http://dsf.dev/fhir/StructureDefinition/task-start-ping"


def class_file_bytes(name: str, super_name: str | None = "java.lang.Object",
                     interfaces: tuple[str, ...] = (), interface: bool = False) -> bytes:
    """Smallest class file the type index can read: header, constant pool, hierarchy."""
    names = [name] + ([super_name] if super_name else []) + list(interfaces)
    pool = b""
    for position, type_name in enumerate(names):
        encoded = type_name.replace(".", "/").encode("utf-8")
        pool += struct.pack(">BH", 1, len(encoded)) + encoded
        pool += struct.pack(">BH", 7, 2 * position + 1)

    access = 0x0601 if interface else 0x0021
    this_index = 2
    super_index = 4 if super_name else 0
    first_interface = 3 if super_name else 2
    interface_indexes = [2 * (first_interface + i) for i in range(len(interfaces))]

    data = struct.pack(">IHHH", 0xCAFEBABE, 0, 61, 2 * len(names) + 1) + pool
    data += struct.pack(">HHHH", access, this_index, super_index, len(interfaces))
    data += struct.pack(f">{len(interfaces)}H", *interface_indexes) if interfaces else b""
    # fields, methods and attributes are never read
    return data + struct.pack(">HHH", 0, 0, 0)


def bpmn(body: str, declarations: str = "") -> str:
    """BPMN definitions document around process XML written with the bpmn/camunda prefixes."""
    return (
        f'<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<bpmn:definitions xmlns:bpmn="{BPMN_NS}" xmlns:camunda="{CAMUNDA_NS}" id="Definitions_1">\n'
        f"{body}\n{declarations}\n"
        f"</bpmn:definitions>\n"
    )


def fhir(resource_type: str, body: str) -> str:
    return f'<{resource_type} xmlns="{FHIR_NS}">\n{body}\n</{resource_type}>\n'


def read_access_tag(code: str = "ALL") -> str:
    return f'<tag><system value="{READ_ACCESS_TAG}"/><code value="{code}"/></tag>'


PING_BPMN = bpmn(
    """
  <bpmn:process id="dsfdev_ping" isExecutable="true">
    <bpmn:startEvent id="StartEvent" name="start ping">
      <bpmn:outgoing>Flow_1</bpmn:outgoing>
      <bpmn:messageEventDefinition id="MessageEventDefinition_1" messageRef="Message_Start"/>
    </bpmn:startEvent>
    <bpmn:serviceTask id="PingTask" name="ping" camunda:class="org.example.PingTask"/>
    <bpmn:endEvent id="EndEvent" name="done"/>
    <bpmn:sequenceFlow id="Flow_1" sourceRef="StartEvent" targetRef="PingTask"/>
    <bpmn:sequenceFlow id="Flow_2" sourceRef="PingTask" targetRef="EndEvent"/>
  </bpmn:process>""",
    '<bpmn:message id="Message_Start" name="startPing"/>',
)

PING_ACTIVITY_DEFINITION = fhir("ActivityDefinition", f"""
  <meta>
    {read_access_tag()}
    <profile value="http://dsf.dev/fhir/StructureDefinition/activity-definition"/>
  </meta>
  <extension url="http://dsf.dev/fhir/StructureDefinition/extension-process-authorization">
    <extension url="message-name"><valueString value="startPing"/></extension>
    <extension url="task-profile"><valueCanonical value="{TASK_PROFILE}|#{{version}}"/></extension>
    <extension url="requester">
      <valueCoding><system value="{PROCESS_AUTHORIZATION}"/><code value="LOCAL_ALL"/></valueCoding>
    </extension>
    <extension url="recipient">
      <valueCoding><system value="{PROCESS_AUTHORIZATION}"/><code value="LOCAL_ALL"/></valueCoding>
    </extension>
  </extension>
  <url value="{PROCESS_URL}"/>
  <version value="#{{version}}"/>
  <name value="Ping"/>
  <status value="unknown"/>
  <kind value="Task"/>""")

PING_TASK_PROFILE = fhir("StructureDefinition", f"""
  <meta>{read_access_tag()}</meta>
  <url value="{TASK_PROFILE}"/>
  <version value="#{{version}}"/>
  <name value="TaskStartPing"/>
  <status value="unknown"/>
  <date value="#{{date}}"/>
  <differential>
    <element id="Task.instantiatesCanonical">
      <path value="Task.instantiatesCanonical"/>
      <fixedCanonical value="{PROCESS_URL}|#{{version}}"/>
    </element>
    <element id="Task.input"><path value="Task.input"/><min value="1"/><max value="2"/></element>
    <element id="Task.input:message-name">
      <path value="Task.input"/><sliceName value="message-name"/><min value="1"/><max value="1"/>
    </element>
    <element id="Task.input:message-name.value[x]">
      <path value="Task.input.value[x]"/><fixedString value="startPing"/>
    </element>
    <element id="Task.input:business-key">
      <path value="Task.input"/><sliceName value="business-key"/><min value="0"/><max value="1"/>
    </element>
    <element id="Task.input:correlation-key">
      <path value="Task.input"/><sliceName value="correlation-key"/><max value="0"/>
    </element>
  </differential>""")


def task_input(code: str, value: str = "startPing", system: str = BPMN_MESSAGE) -> str:
    return (f'<input><type><coding><system value="{system}"/><code value="{code}"/></coding></type>'
            f'<valueString value="{value}"/></input>')


def ping_task(status: str = "draft", inputs: str | None = None) -> str:
    inputs = task_input("message-name") if inputs is None else inputs
    return fhir("Task", f"""
  <meta><profile value="{TASK_PROFILE}|#{{version}}"/></meta>
  <instantiatesCanonical value="{PROCESS_URL}|#{{version}}"/>
  <status value="{status}"/>
  <intent value="order"/>
  <authoredOn value="#{{date}}"/>
  <requester>
    <type value="Organization"/>
    <identifier><system value="{ORGANIZATION_IDENTIFIER}"/><value value="#{{organization}}"/></identifier>
  </requester>
  <restriction>
    <recipient>
      <type value="Organization"/>
      <identifier><system value="{ORGANIZATION_IDENTIFIER}"/><value value="#{{organization}}"/></identifier>
    </recipient>
  </restriction>
  {inputs}""")


class PluginBuilder:
    """Writes a Maven-style process plugin project below a root directory."""

    def __init__(self, root: Path):
        self.root = root
        self.resources = root / "src" / "main" / "resources"
        root.mkdir(parents=True, exist_ok=True)

    def write(self, relative: str, content: str | bytes) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path

    def bpmn(self, name: str, content: str) -> Path:
        return self.write(f"src/main/resources/bpe/{name}", content)

    def fhir(self, resource_type: str, name: str, content: str) -> Path:
        return self.write(f"src/main/resources/fhir/{resource_type}/{name}", content)

    def java_class(self, name: str, super_name: str | None = "java.lang.Object",
                   interfaces: tuple[str, ...] = (), interface: bool = False) -> Path:
        relative = "target/classes/" + name.replace(".", "/") + ".class"
        return self.write(relative, class_file_bytes(name, super_name, interfaces, interface))

    def api_version(self, version: str = "v2") -> Path:
        service = V2_PLUGIN_DEFINITION if version == "v2" else V1_PLUGIN_DEFINITION
        return self.write(f"src/main/resources/META-INF/services/{service}", "org.example.PingProcessPluginDefinition\n")

    def ping_plugin(self) -> "PluginBuilder":
        """A complete, valid v2 plugin with one process."""
        self.api_version("v2")
        self.java_class("org.example.PingTask", interfaces=("dev.dsf.bpe.v2.activity.ServiceTask",))
        self.bpmn("ping.bpmn", PING_BPMN)
        self.fhir("ActivityDefinition", "ping.xml", PING_ACTIVITY_DEFINITION)
        self.fhir("StructureDefinition", "task-start-ping.xml", PING_TASK_PROFILE)
        self.fhir("Task", "task-start-ping.xml", ping_task())
        return self

    def context(self, config: LintConfig | None = None) -> ValidationContext:
        return ValidationContext.create(self.root, config)


@pytest.fixture
def plugin(tmp_path) -> PluginBuilder:
    """Empty plugin project rooted in tmp_path."""
    return PluginBuilder(tmp_path / "ping-plugin")


@pytest.fixture
def ping_plugin(plugin) -> PluginBuilder:
    """Valid v2 ping plugin."""
    return plugin.ping_plugin()


@pytest.fixture
def new_plugin(tmp_path):
    """Factory for further plugin projects, independent of the 'plugin' fixture."""
    def build(name: str) -> PluginBuilder:
        return PluginBuilder(tmp_path / name)
    return build


@pytest.fixture
def xml():
    """Parse XML text into a QueryNode."""
    def parse(content: str) -> QueryNode:
        return parse_xml(content)
    return parse


@pytest.fixture
def samples() -> SimpleNamespace:
    """Document templates used across the test modules."""
    return SimpleNamespace(
        bpmn=bpmn,
        fhir=fhir,
        read_access_tag=read_access_tag,
        task_input=task_input,
        ping_task=ping_task,
        class_file_bytes=class_file_bytes,
        ping_bpmn=PING_BPMN,
        ping_activity_definition=PING_ACTIVITY_DEFINITION,
        ping_task_profile=PING_TASK_PROFILE,
        process_url=PROCESS_URL,
        task_profile=TASK_PROFILE,
    )
