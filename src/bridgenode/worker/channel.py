"""Request channel for exchanging one job with a worker process."""
import asyncio
import logging
from typing import Optional
from bridgenode.core.enums import SignalKind
from bridgenode.core.exceptions import ChannelBusyError, SpawnError
from bridgenode.worker.classifier import OutcomeClassifier
from bridgenode.worker.handle import WorkerHandle
from bridgenode.worker.models import CompletionSignal, JobRequest, JobResult

logger = logging.getLogger(__name__)


class RequestChannel:
    """
    Writes one job envelope to the worker and waits for its completion.

    The timeout timer starts only after the write has drained and is
    cancelled before a reply is handed back, so a late reply can never
    follow a reported timeout.
    """

    def __init__(self, handle: WorkerHandle, log: Optional[logging.Logger] = None):
        """
        Initialize request channel.

        Args:
            handle: Spawned worker handle
            log: Logger, defaults to module logger
        """
        self.handle = handle
        self.log = log or logger
        self._submitted = False

    async def submit(self, job: JobRequest, timeout_seconds: float) -> JobResult:
        """
        Submit a job and wait for exactly one outcome.

        Args:
            job: Job request envelope
            timeout_seconds: Bound for the reply, counted from the end of the write

        Returns:
            JobResult: Success, Timeout, Terminated or Errored result

        Raises:
            ChannelBusyError: If a job was already submitted on this channel
        """
        if self._submitted:
            raise ChannelBusyError()
        self._submitted = True

        completion = await self._exchange(job, timeout_seconds)
        return OutcomeClassifier.build_result(completion)

    async def _exchange(self, job: JobRequest, timeout_seconds: float) -> CompletionSignal:
        try:
            await self.handle.send(job.to_envelope())
        except SpawnError as e:
            self.log.error(f"Deferred worker launch failed: {e}")
            return CompletionSignal(kind=SignalKind.PROCESS_EXITED, detail=e.reason)
        except (ConnectionError, RuntimeError) as e:
            # stdin already closed, the worker is gone
            self.log.warning(f"Could not write job to worker: {e}")
            return CompletionSignal(
                kind=SignalKind.PROCESS_EXITED,
                returncode=self.handle.returncode,
                detail=f"input channel closed ({type(e).__name__})",
            )

        try:
            return await asyncio.wait_for(
                self.handle.next_signal(),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError:
            return CompletionSignal(
                kind=SignalKind.TIMER_FIRED,
                detail=f"{timeout_seconds}s",
            )
