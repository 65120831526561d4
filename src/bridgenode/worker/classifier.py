"""Outcome classification for job completion signals."""
import signal
from typing import Optional
from pydantic import ValidationError
from bridgenode.core.enums import JobOutcome, SignalKind
from bridgenode.worker.models import CompletionSignal, JobResult, WorkerReply


class OutcomeClassifier:
    """
    Maps raw completion signals to job outcomes.

    Pure logic, no I/O. A reply counts as SUCCESS only if it matches the
    reply schema and does not report ok=false itself.
    """

    @classmethod
    def classify(cls, completion: CompletionSignal) -> JobOutcome:
        """
        Classify a completion signal.

        Args:
            completion: Signal observed for the in-flight job

        Returns:
            JobOutcome: Classified outcome
        """
        if completion.kind == SignalKind.TIMER_FIRED:
            return JobOutcome.TIMEOUT
        if completion.kind == SignalKind.PROCESS_EXITED:
            return JobOutcome.TERMINATED
        if completion.kind == SignalKind.PROCESS_ERRORED:
            return JobOutcome.ERRORED

        reply = cls._parse_reply(completion)
        if reply is None or not reply.ok:
            return JobOutcome.ERRORED
        return JobOutcome.SUCCESS

    @classmethod
    def build_result(cls, completion: CompletionSignal) -> JobResult:
        """
        Build the job result for a completion signal.

        Timeout and termination results are synthesized, their text
        says so. Errored results carry the raw worker output.

        Args:
            completion: Signal observed for the in-flight job

        Returns:
            JobResult: Result with outcome and diagnostic text
        """
        outcome = cls.classify(completion)

        if outcome == JobOutcome.SUCCESS:
            reply = cls._parse_reply(completion)
            return JobResult(
                outcome=outcome,
                text=reply.response.text,
                body=completion.payload,
            )

        if outcome == JobOutcome.TIMEOUT:
            text = "no reply within bound"
            if completion.detail:
                text = f"{text} ({completion.detail})"
            return JobResult(outcome=outcome, text=text)

        if outcome == JobOutcome.TERMINATED:
            return JobResult(
                outcome=outcome,
                text=cls._describe_exit(completion),
                exit_code=completion.returncode,
            )

        return JobResult(
            outcome=outcome,
            text=cls._describe_error(completion),
            body=completion.payload if isinstance(completion.payload, dict) else None,
        )

    @staticmethod
    def _parse_reply(completion: CompletionSignal) -> Optional[WorkerReply]:
        try:
            return WorkerReply.model_validate(completion.payload)
        except ValidationError:
            return None

    @staticmethod
    def _describe_exit(completion: CompletionSignal) -> str:
        """Diagnostic for a worker that went away before replying."""
        returncode = completion.returncode
        if returncode is None:
            reason = "worker process terminated before replying"
        elif returncode < 0:
            try:
                name = signal.Signals(-returncode).name
            except ValueError:
                name = f"signal {-returncode}"
            reason = f"worker process killed by {name} before replying"
        else:
            reason = f"worker process exited with code {returncode} before replying"
        if completion.detail:
            reason = f"{reason}: {completion.detail}"
        return reason

    @classmethod
    def _describe_error(cls, completion: CompletionSignal) -> str:
        """Diagnostic for a reply that could not be used."""
        if completion.kind == SignalKind.REPLY:
            reply = cls._parse_reply(completion)
            if reply is not None:
                # Worker reported its own failure
                return reply.response.text
            raw = completion.raw.decode("utf-8", errors="replace").rstrip("\n")
            return f"malformed reply from worker: {raw}"

        raw = completion.raw.decode("utf-8", errors="replace").rstrip("\n")
        kind = "unparseable output" if completion.parser else "unexpected output"
        return f"{kind} from worker: {raw}"
