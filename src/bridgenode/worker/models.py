"""Worker data models: envelopes, completion signals and results."""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Union
from pydantic import BaseModel, ConfigDict, Field
from bridgenode.core.enums import JobOutcome, NodeStatusState, SignalKind

# Addresses and ports are opaque to the supervisor
EndpointValue = Union[int, str]


class NodeConfig(BaseModel):
    """Node configuration handed over by the host for one node instance."""

    mqtt_address: EndpointValue = Field(..., alias="mqttAddress", description="MQTT broker address")
    mqtt_port: EndpointValue = Field(..., alias="mqttPort", description="MQTT broker port")
    modbus_client_address: EndpointValue = Field(
        ..., alias="modbusClientAddress", description="Modbus target device address"
    )
    modbus_client_port: EndpointValue = Field(
        ..., alias="modbusClientPort", description="Modbus target device port"
    )
    name: str = Field(default="ModbusServer", description="Node name used in logs")

    model_config = ConfigDict(populate_by_name=True)

    def to_job_request(self) -> "JobRequest":
        """Build the single job request for this node."""
        return JobRequest(
            mqtt_address=self.mqtt_address,
            mqtt_port=self.mqtt_port,
            modbus_client_address=self.modbus_client_address,
            modbus_client_port=self.modbus_client_port,
        )


class JobRequest(BaseModel):
    """Envelope written to the worker. Immutable once constructed."""

    mqtt_address: EndpointValue = Field(..., alias="mqttAddress")
    mqtt_port: EndpointValue = Field(..., alias="mqttPort")
    modbus_client_address: EndpointValue = Field(..., alias="modbusClientAddress")
    modbus_client_port: EndpointValue = Field(..., alias="modbusClientPort")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_envelope(self) -> Dict[str, Any]:
        """Return the wire envelope using the worker's field names."""
        return self.model_dump(by_alias=True)


class ResponseBody(BaseModel):
    """Human-readable part of a worker reply."""

    text: str


class WorkerReply(BaseModel):
    """Schema a genuine worker reply must satisfy."""

    ok: bool = True
    response: ResponseBody

    model_config = ConfigDict(extra="allow")


class JobResult(BaseModel):
    """
    Result of one job submission, received from or synthesized for the worker.

    Exactly one of the ok/timeout/terminated/errored flags is true,
    so a failed result always names its cause.
    """

    outcome: JobOutcome
    text: str
    body: Optional[Dict[str, Any]] = None
    exit_code: Optional[int] = None

    model_config = ConfigDict(frozen=True)

    @property
    def ok(self) -> bool:
        return self.outcome == JobOutcome.SUCCESS

    @property
    def timeout(self) -> bool:
        return self.outcome == JobOutcome.TIMEOUT

    @property
    def terminated(self) -> bool:
        return self.outcome == JobOutcome.TERMINATED

    @property
    def errored(self) -> bool:
        return self.outcome == JobOutcome.ERRORED

    def to_envelope(self) -> Dict[str, Any]:
        """Return the output envelope reported to the host."""
        return {
            "ok": self.ok,
            "timeout": self.timeout,
            "terminated": self.terminated,
            "errored": self.errored,
            "response": {"text": self.text},
        }


@dataclass
class CompletionSignal:
    """
    Raw completion event for an in-flight job.

    REPLY carries the decoded payload, PROCESS_ERRORED the raw bytes and
    parser flag, PROCESS_EXITED the return code.
    """

    kind: SignalKind
    payload: Optional[Any] = None
    raw: bytes = b""
    parser: bool = True
    returncode: Optional[int] = None
    detail: Optional[str] = None


@dataclass
class WorkerFault:
    """Asynchronous fault reported by a running worker."""

    parser: bool
    data: bytes

    @property
    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace").rstrip("\n")


@dataclass
class WorkerOptions:
    """Startup options for a worker process."""

    init_at_once: bool = True
    cwd: Optional[str] = None
    kill_timeout: float = 5.0


@dataclass
class WorkerCommand:
    """
    How to launch the worker.

    A path ending in .go is run through the Go toolchain,
    anything else is executed directly.
    """

    path: str
    args: List[str] = field(default_factory=list)
    go_binary: str = "go"

    @property
    def is_go_source(self) -> bool:
        return self.path.endswith(".go")

    @property
    def executable(self) -> str:
        return self.go_binary if self.is_go_source else self.path

    def argv(self) -> List[str]:
        if self.is_go_source:
            return [self.go_binary, "run", self.path, *self.args]
        return [self.path, *self.args]


_STATUS_STYLE = {
    NodeStatusState.INITIALIZING: ("yellow", "ring"),
    NodeStatusState.STARTED: ("green", "dot"),
    NodeStatusState.COMPLETED: ("green", "dot"),
    NodeStatusState.FAILED: ("red", "ring"),
}


@dataclass(frozen=True)
class NodeStatus:
    """Status shown on the host's status surface."""

    state: NodeStatusState
    message: str

    @property
    def fill(self) -> str:
        return _STATUS_STYLE[self.state][0]

    @property
    def shape(self) -> str:
        return _STATUS_STYLE[self.state][1]

    def to_dict(self) -> Dict[str, str]:
        return {"fill": self.fill, "shape": self.shape, "text": self.message}
