"""Contracts an implementation class must satisfy, per API version and element kind."""

from dataclasses import dataclass
from enum import Enum


class ApiVersion(str, Enum):
    """DSF BPE process plugin API generation."""
    V1 = "v1"
    V2 = "v2"
    UNKNOWN = "unknown"


class ElementKind(str, Enum):
    """Structural kinds that reference an implementation class."""
    SERVICE_TASK = "service_task"
    SEND_TASK = "send_task"
    MESSAGE_INTERMEDIATE_THROW_EVENT = "message_intermediate_throw_event"
    MESSAGE_END_EVENT = "message_end_event"
    USER_TASK_LISTENER = "user_task_listener"
    EXECUTION_LISTENER = "execution_listener"
    RECEIVE_TASK = "receive_task"
    GENERIC = "generic"


@dataclass(frozen=True)
class Contract:
    """A Java type that implementations must be assignable to."""
    type_name: str

    @property
    def simple_name(self) -> str:
        return self.type_name.rsplit(".", 1)[-1]

    def __str__(self) -> str:
        return self.type_name


# Camunda engine interfaces (API v1)
JAVA_DELEGATE = Contract("org.camunda.bpm.engine.delegate.JavaDelegate")
TASK_LISTENER = Contract("org.camunda.bpm.engine.delegate.TaskListener")
CAMUNDA_EXECUTION_LISTENER = Contract("org.camunda.bpm.engine.delegate.ExecutionListener")

# DSF API v1 base classes
V1_ABSTRACT_SERVICE_DELEGATE = "dev.dsf.bpe.v1.activity.AbstractServiceDelegate"
V1_ABSTRACT_TASK_MESSAGE_SEND = "dev.dsf.bpe.v1.activity.AbstractTaskMessageSend"
V1_DEFAULT_USER_TASK_LISTENER = "dev.dsf.bpe.v1.activity.DefaultUserTaskListener"

# DSF API v2 interfaces
V2_SERVICE_TASK = Contract("dev.dsf.bpe.v2.activity.ServiceTask")
V2_MESSAGE_SEND_TASK = Contract("dev.dsf.bpe.v2.activity.MessageSendTask")
V2_MESSAGE_INTERMEDIATE_THROW_EVENT = Contract("dev.dsf.bpe.v2.activity.MessageIntermediateThrowEvent")
V2_MESSAGE_END_EVENT = Contract("dev.dsf.bpe.v2.activity.MessageEndEvent")
V2_USER_TASK_LISTENER = Contract("dev.dsf.bpe.v2.activity.UserTaskListener")
V2_EXECUTION_LISTENER = Contract("dev.dsf.bpe.v2.activity.ExecutionListener")
V2_DEFAULT_USER_TASK_LISTENER = "dev.dsf.bpe.v2.activity.DefaultUserTaskListener"
V2_ABSTRACT_TASK_MESSAGE_SEND = "dev.dsf.bpe.v2.activity.AbstractTaskMessageSend"

V1_PLUGIN_DEFINITION = "dev.dsf.bpe.v1.ProcessPluginDefinition"
V2_PLUGIN_DEFINITION = "dev.dsf.bpe.v2.ProcessPluginDefinition"

_V1_ANY = (JAVA_DELEGATE, TASK_LISTENER, CAMUNDA_EXECUTION_LISTENER)
_V2_ANY = (
    V2_SERVICE_TASK,
    V2_MESSAGE_SEND_TASK,
    V2_MESSAGE_INTERMEDIATE_THROW_EVENT,
    V2_MESSAGE_END_EVENT,
    V2_USER_TASK_LISTENER,
)

# Ordered candidates; the first contract a type satisfies wins
CONTRACTS: dict[tuple[ApiVersion, ElementKind], tuple[Contract, ...]] = {
    (ApiVersion.V1, ElementKind.SERVICE_TASK): (JAVA_DELEGATE,),
    (ApiVersion.V1, ElementKind.SEND_TASK): (JAVA_DELEGATE,),
    (ApiVersion.V1, ElementKind.MESSAGE_INTERMEDIATE_THROW_EVENT): (JAVA_DELEGATE,),
    (ApiVersion.V1, ElementKind.MESSAGE_END_EVENT): (JAVA_DELEGATE,),
    (ApiVersion.V1, ElementKind.USER_TASK_LISTENER): (TASK_LISTENER,),
    (ApiVersion.V1, ElementKind.EXECUTION_LISTENER): (CAMUNDA_EXECUTION_LISTENER,),
    (ApiVersion.V1, ElementKind.RECEIVE_TASK): _V1_ANY,
    (ApiVersion.V1, ElementKind.GENERIC): _V1_ANY,
    (ApiVersion.V2, ElementKind.SERVICE_TASK): (V2_SERVICE_TASK,),
    (ApiVersion.V2, ElementKind.SEND_TASK): (V2_MESSAGE_SEND_TASK,),
    (ApiVersion.V2, ElementKind.MESSAGE_INTERMEDIATE_THROW_EVENT): (V2_MESSAGE_INTERMEDIATE_THROW_EVENT,),
    (ApiVersion.V2, ElementKind.MESSAGE_END_EVENT): (V2_MESSAGE_END_EVENT,),
    (ApiVersion.V2, ElementKind.USER_TASK_LISTENER): (V2_USER_TASK_LISTENER,),
    (ApiVersion.V2, ElementKind.EXECUTION_LISTENER): (V2_EXECUTION_LISTENER,),
    (ApiVersion.V2, ElementKind.RECEIVE_TASK): _V2_ANY,
    (ApiVersion.V2, ElementKind.GENERIC): _V2_ANY,
}

_DESCRIPTIONS: dict[tuple[ApiVersion, ElementKind], str] = {
    (ApiVersion.V1, ElementKind.SERVICE_TASK): "JavaDelegate",
    (ApiVersion.V1, ElementKind.SEND_TASK): "JavaDelegate",
    (ApiVersion.V1, ElementKind.MESSAGE_INTERMEDIATE_THROW_EVENT): "JavaDelegate",
    (ApiVersion.V1, ElementKind.MESSAGE_END_EVENT): "JavaDelegate",
    (ApiVersion.V1, ElementKind.USER_TASK_LISTENER): "TaskListener",
    (ApiVersion.V1, ElementKind.EXECUTION_LISTENER): "ExecutionListener (Camunda)",
    (ApiVersion.V1, ElementKind.RECEIVE_TASK): "JavaDelegate, TaskListener, or ExecutionListener",
    (ApiVersion.V1, ElementKind.GENERIC): "JavaDelegate, TaskListener, or ExecutionListener",
    (ApiVersion.V2, ElementKind.SERVICE_TASK): "ServiceTask",
    (ApiVersion.V2, ElementKind.SEND_TASK): "MessageSendTask",
    (ApiVersion.V2, ElementKind.MESSAGE_INTERMEDIATE_THROW_EVENT): "MessageIntermediateThrowEvent",
    (ApiVersion.V2, ElementKind.MESSAGE_END_EVENT): "MessageEndEvent",
    (ApiVersion.V2, ElementKind.USER_TASK_LISTENER): "UserTaskListener",
    (ApiVersion.V2, ElementKind.EXECUTION_LISTENER): "ExecutionListener (DSF V2)",
    (ApiVersion.V2, ElementKind.RECEIVE_TASK): "a supported DSF V2 activity interface",
    (ApiVersion.V2, ElementKind.GENERIC): "a supported DSF V2 activity interface",
}


def contracts_for(version: ApiVersion, kind: ElementKind) -> tuple[Contract, ...]:
    """Ordered candidate contracts; empty for an unknown API version."""
    return CONTRACTS.get((version, kind), ())


def describe_contract(version: ApiVersion, kind: ElementKind) -> str:
    return _DESCRIPTIONS.get((version, kind), "a supported DSF activity interface")
