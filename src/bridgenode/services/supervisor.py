"""Supervisor orchestrating one worker process and one job exchange."""
import asyncio
import logging
import time
from typing import Callable, Optional
from bridgenode.config import Settings, get_settings
from bridgenode.core.enums import JobOutcome, NodeStatusState, SupervisorState
from bridgenode.core.exceptions import SpawnError
from bridgenode.observability.metrics import (
    record_job_outcome,
    record_spawn_failure,
    record_worker_fault,
)
from bridgenode.services.state_machine import SupervisorStateMachine
from bridgenode.worker.channel import RequestChannel
from bridgenode.worker.handle import WorkerHandle
from bridgenode.worker.models import (
    JobResult,
    NodeConfig,
    NodeStatus,
    WorkerCommand,
    WorkerFault,
    WorkerOptions,
)

logger = logging.getLogger(__name__)

StatusCallback = Callable[[NodeStatus], None]
ResultCallback = Callable[[JobResult], None]


class Supervisor:
    """
    Runs one node: spawn the worker, submit one job, report, close.

    One-shot. A run ends in CLOSED or FAILED_INIT and there is no restart,
    a new Supervisor is needed to try again. The worker is closed after
    reporting whatever the outcome.
    """

    def __init__(
        self,
        config: NodeConfig,
        report_status: StatusCallback,
        command: WorkerCommand,
        options: Optional[WorkerOptions] = None,
        timeout_seconds: float = 5.0,
        on_result: Optional[ResultCallback] = None,
        log: Optional[logging.Logger] = None,
    ):
        """
        Initialize supervisor.

        Args:
            config: Node configuration from the host
            report_status: Host status surface
            command: Worker executable and arguments
            options: Worker startup options
            timeout_seconds: Bound for the worker's reply
            on_result: Optional callback receiving the job result
            log: Observability sink, defaults to module logger
        """
        self.config = config
        self.report_status = report_status
        self.command = command
        self.options = options or WorkerOptions()
        self.timeout_seconds = timeout_seconds
        self.on_result = on_result
        self.log = log or logger

        self.state = SupervisorState.CREATED
        self.worker: Optional[WorkerHandle] = None
        self.result: Optional[JobResult] = None
        self.init_error: Optional[SpawnError] = None
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(
        cls,
        config: NodeConfig,
        report_status: StatusCallback,
        settings: Optional[Settings] = None,
        **kwargs,
    ) -> "Supervisor":
        """Build a supervisor with worker command and bounds taken from settings."""
        settings = settings or get_settings()
        command = WorkerCommand(
            path=settings.WORKER_PATH,
            args=list(settings.WORKER_ARGS),
            go_binary=settings.GO_BINARY,
        )
        options = WorkerOptions(
            init_at_once=settings.WORKER_INIT_AT_ONCE,
            cwd=settings.WORKER_CWD,
            kill_timeout=settings.WORKER_KILL_TIMEOUT,
        )
        return cls(
            config,
            report_status,
            command,
            options=options,
            timeout_seconds=settings.JOB_TIMEOUT_SECONDS,
            **kwargs,
        )

    def start(self) -> asyncio.Task:
        """
        Schedule the run on the current event loop.

        Returns the same task on repeated calls.
        """
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def run(self) -> Optional[JobResult]:
        """
        Run the node to completion.

        Returns:
            Optional[JobResult]: Job result, or None if the worker failed to start
        """
        name = self.config.name
        self._transition(SupervisorState.INITIALIZING)
        self._set_status(NodeStatusState.INITIALIZING, "Initializing")

        worker = WorkerHandle(self.command, self.options, log=self.log)
        worker.on_fault(self._on_worker_fault)
        self.worker = worker

        try:
            await worker.spawn()
        except SpawnError as e:
            self.init_error = e
            record_spawn_failure()
            self.log.error(f"Node {name}: error initializing worker: {e}")
            self._transition(SupervisorState.FAILED_INIT)
            self._set_status(NodeStatusState.FAILED, f"Init failed: {e.reason}")
            return None
        except asyncio.CancelledError:
            self.log.warning(f"Node {name}: run cancelled while initializing, closing worker")
            try:
                await worker.close()
            finally:
                self._transition(SupervisorState.FAILED_INIT)
                self._set_status(NodeStatusState.FAILED, "Init failed: cancelled")
            raise

        self._transition(SupervisorState.READY)
        self._set_status(NodeStatusState.STARTED, "Started")

        try:
            self._transition(SupervisorState.EXECUTING)
            job = self.config.to_job_request()
            self.log.info(f"Node {name}: submitting job to worker (pid {worker.pid})")

            started_at = time.monotonic()
            channel = RequestChannel(worker, log=self.log)
            result = await channel.submit(job, self.timeout_seconds)
            duration = time.monotonic() - started_at

            self._transition(SupervisorState.REPORTING)
            self.result = result
            record_job_outcome(result.outcome, duration)
            self._report(result)
        except asyncio.CancelledError:
            self.log.warning(f"Node {name}: run cancelled in state {self.state}, closing worker")
            raise
        finally:
            await worker.close()
            self._transition(SupervisorState.CLOSED)

        return result

    def _report(self, result: JobResult) -> None:
        """Log the result, update the status surface and hand it to the caller."""
        name = self.config.name
        if result.outcome == JobOutcome.SUCCESS:
            self.log.info(f"Node {name}: worker finished correctly, responded: {result.text}")
            self._set_status(NodeStatusState.COMPLETED, f"Success: {result.text}")
        elif result.outcome == JobOutcome.TIMEOUT:
            self.log.warning(f"Node {name}: job timed out after {self.timeout_seconds}s")
            self._set_status(NodeStatusState.FAILED, f"Timeout: {result.text}")
        elif result.outcome == JobOutcome.TERMINATED:
            # Workers should only exit when closed
            self.log.warning(f"Node {name}: worker terminated unexpectedly: {result.text}")
            self._set_status(NodeStatusState.FAILED, f"Terminated: {result.text}")
        else:
            self.log.error(f"Node {name}: worker reply unusable: {result.text}")
            self._set_status(NodeStatusState.FAILED, f"Errored: {result.text}")

        if self.on_result is not None:
            self.on_result(result)

    def _on_worker_fault(self, fault: WorkerFault) -> None:
        record_worker_fault(fault.parser)
        self.log.error(
            f"Node {self.config.name}: error from worker. "
            f"Internal parser error: {'yes' if fault.parser else 'no'}. "
            f"Actual data: {fault.text}"
        )

    def _set_status(self, state: NodeStatusState, message: str) -> None:
        self.report_status(NodeStatus(state=state, message=message))

    def _transition(self, new_state: SupervisorState) -> None:
        SupervisorStateMachine.validate_transition(self.state, new_state)
        self.log.debug(f"Node {self.config.name}: {self.state} -> {new_state}")
        self.state = new_state


def create_node(
    config: NodeConfig,
    report_status: StatusCallback,
    settings: Optional[Settings] = None,
    **kwargs,
) -> Supervisor:
    """
    Create a node and start it right away, as a host does on construction.

    Must be called from a running event loop.

    Returns:
        Supervisor: The started supervisor, await supervisor.start() for the result
    """
    supervisor = Supervisor.from_settings(config, report_status, settings=settings, **kwargs)
    supervisor.start()
    return supervisor
