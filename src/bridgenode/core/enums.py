"""Core enumerations for the BridgeNode worker supervisor."""
from enum import Enum


class WorkerState(str, Enum):
    """
    Worker process lifecycle states.

    State flow:
        SPAWNING → READY → BUSY → CLOSED
            ↓
          FAILED

    - SPAWNING: Process is being launched
    - READY: Process is running and can accept a job
    - BUSY: A job envelope has been written and a reply is pending
    - CLOSED: Process has been torn down
    - FAILED: Process could not be launched
    """

    SPAWNING = "SPAWNING"
    READY = "READY"
    BUSY = "BUSY"
    CLOSED = "CLOSED"
    FAILED = "FAILED"

    def __str__(self) -> str:
        """Return string representation of the enum value."""
        return self.value


class SupervisorState(str, Enum):
    """
    Supervisor state machine states.

    State flow:
        CREATED → INITIALIZING → READY → EXECUTING → REPORTING → CLOSED
                       ↓
                  FAILED_INIT
    """

    CREATED = "CREATED"
    INITIALIZING = "INITIALIZING"
    READY = "READY"
    EXECUTING = "EXECUTING"
    REPORTING = "REPORTING"
    CLOSED = "CLOSED"
    FAILED_INIT = "FAILED_INIT"

    def __str__(self) -> str:
        """Return string representation of the enum value."""
        return self.value


class JobOutcome(str, Enum):
    """
    Classified outcome of a single job submission.

    - SUCCESS: Worker replied with a well-formed envelope
    - TIMEOUT: No reply arrived within the bound
    - TERMINATED: Worker process exited before replying
    - ERRORED: Worker replied but the reply could not be parsed
    """

    SUCCESS = "SUCCESS"
    TIMEOUT = "TIMEOUT"
    TERMINATED = "TERMINATED"
    ERRORED = "ERRORED"

    def __str__(self) -> str:
        """Return string representation of the enum value."""
        return self.value


class SignalKind(str, Enum):
    """Raw completion signals observed while a job is in flight."""

    REPLY = "REPLY"
    TIMER_FIRED = "TIMER_FIRED"
    PROCESS_EXITED = "PROCESS_EXITED"
    PROCESS_ERRORED = "PROCESS_ERRORED"

    def __str__(self) -> str:
        return self.value


class NodeStatusState(str, Enum):
    """States shown on the host status surface."""

    INITIALIZING = "initializing"
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value
