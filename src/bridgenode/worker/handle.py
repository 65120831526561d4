"""Worker process handle: spawn, output readers and single-shot close."""
import asyncio
import json
import logging
import os
import shutil
import signal
from asyncio.subprocess import Process
from typing import Any, Callable, Dict, List, Optional, Set
from bridgenode.core.enums import SignalKind, WorkerState
from bridgenode.core.exceptions import ProtocolParseError, SpawnError
from bridgenode.worker.models import (
    CompletionSignal,
    WorkerCommand,
    WorkerFault,
    WorkerOptions,
)

logger = logging.getLogger(__name__)

FaultListener = Callable[[WorkerFault], None]


def decode_line(line: bytes) -> Dict[str, Any]:
    """
    Decode one line of worker output into a JSON object.

    Raises:
        ProtocolParseError: parser=True if the line is not JSON,
            parser=False if it is JSON but not an object
    """
    try:
        payload = json.loads(line)
    except ValueError as e:
        raise ProtocolParseError(f"Worker output is not JSON: {e}", raw=line, parser=True) from e

    if not isinstance(payload, dict):
        raise ProtocolParseError(
            f"Worker output is {type(payload).__name__}, expected an object",
            raw=line,
            parser=False,
        )
    return payload


class WorkerHandle:
    """
    Owns one external worker process.

    Frames worker output as one JSON document per stdout line and queues
    every decoded line, fault and the final exit as completion signals.
    Knows nothing about the job envelope itself.
    """

    def __init__(
        self,
        command: WorkerCommand,
        options: Optional[WorkerOptions] = None,
        log: Optional[logging.Logger] = None,
    ):
        """
        Initialize worker handle.

        Args:
            command: Worker executable and arguments
            options: Startup options (init at once, cwd, kill timeout)
            log: Logger for worker diagnostics, defaults to module logger
        """
        self.command = command
        self.options = options or WorkerOptions()
        self.log = log or logger

        self.state = WorkerState.SPAWNING
        self.last_error: Optional[str] = None

        self._process: Optional[Process] = None
        self._events: "asyncio.Queue[CompletionSignal]" = asyncio.Queue()
        self._fault_listeners: List[FaultListener] = []
        self._reader_tasks: Set[asyncio.Task] = set()
        self._closing = False
        self._closed = asyncio.Event()

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode if self._process else None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    def on_fault(self, listener: FaultListener) -> None:
        """Register a listener for asynchronous worker faults."""
        self._fault_listeners.append(listener)

    async def spawn(self) -> None:
        """
        Start the worker.

        With init_at_once the process is launched now, otherwise only the
        executable is resolved and the launch happens on the first send.

        Raises:
            SpawnError: If the worker cannot be launched
        """
        if self.state != WorkerState.SPAWNING:
            raise SpawnError(self.command.path, f"handle is {self.state}, expected {WorkerState.SPAWNING}")

        if not self.options.init_at_once:
            self._resolve_executable()
            self.state = WorkerState.READY
            self.log.info(f"Worker {self.command.path} resolved, launch deferred until first job")
            return

        await self._launch()

    async def ensure_running(self) -> None:
        """
        Launch a deferred worker if it has not been started yet.

        Raises:
            SpawnError: If the deferred launch fails or the handle is closed
        """
        if self._closing:
            raise SpawnError(self.command.path, "handle is closed")
        if self._process is None:
            await self._launch()

    async def send(self, envelope: Dict[str, Any]) -> None:
        """
        Write one envelope as a JSON line to the worker's stdin.

        Returns once the write has drained.

        Raises:
            SpawnError: If a deferred launch fails
            ConnectionError: If the worker's stdin is already closed
        """
        await self.ensure_running()
        line = json.dumps(envelope).encode("utf-8") + b"\n"
        self._process.stdin.write(line)
        await self._process.stdin.drain()
        self.state = WorkerState.BUSY

    async def next_signal(self) -> CompletionSignal:
        """Wait for the next completion signal from the worker."""
        return await self._events.get()

    async def close(self) -> None:
        """
        Tear the worker down.

        Idempotent: the first call terminates the worker's process group
        (escalating to kill after the kill timeout) and stops the readers,
        later or concurrent calls wait for that teardown to finish.
        """
        if self._closing:
            await self._closed.wait()
            return

        self._closing = True
        try:
            if self._process is not None:
                await self._terminate(self._process)

            readers = list(self._reader_tasks)
            for task in readers:
                task.cancel()
            if readers:
                await asyncio.gather(*readers, return_exceptions=True)
            self._reader_tasks.clear()
        finally:
            self.state = WorkerState.CLOSED
            self._closed.set()

    async def _terminate(self, process: Process) -> None:
        if process.returncode is None:
            self.log.info(f"Terminating worker (pid {process.pid})")
            self._signal_group(process, signal.SIGTERM)
            try:
                await asyncio.wait_for(process.wait(), timeout=self.options.kill_timeout)
            except asyncio.TimeoutError:
                self.log.warning(
                    f"Worker (pid {process.pid}) ignored SIGTERM for "
                    f"{self.options.kill_timeout}s, killing"
                )
                self._signal_group(process, signal.SIGKILL)
                await process.wait()

        # Children outlive the leader, e.g. the binary built by `go run`
        if self._signal_group(process, signal.SIGKILL):
            self.log.info(f"Killed processes left in worker group {process.pid}")

    @staticmethod
    def _signal_group(process: Process, sig: int) -> bool:
        """Send sig to the worker's process group, False if the group is gone."""
        try:
            os.killpg(process.pid, sig)
        except (ProcessLookupError, PermissionError):
            return False
        return True

    async def _launch(self) -> None:
        argv = self.command.argv()
        try:
            self._process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.options.cwd,
                start_new_session=True,
            )
        except OSError as e:
            self._fail(str(e))
            raise SpawnError(self.command.path, str(e)) from e

        self.state = WorkerState.READY
        self.log.info(f"Worker started: {' '.join(argv)} (pid {self._process.pid})")

        for reader in (self._read_stdout(), self._read_stderr()):
            task = asyncio.create_task(reader)
            self._reader_tasks.add(task)
            task.add_done_callback(self._reader_tasks.discard)

    def _resolve_executable(self) -> None:
        """Check the worker can be launched without starting it."""
        executable = self.command.executable
        if os.sep in executable and self.options.cwd:
            executable = os.path.join(self.options.cwd, executable)
        if shutil.which(executable) is None:
            self._fail("executable not found or not executable")
            raise SpawnError(self.command.path, "executable not found or not executable")

        if self.command.is_go_source:
            source = self.command.path
            if self.options.cwd:
                source = os.path.join(self.options.cwd, source)
            if not os.path.isfile(source):
                self._fail("Go source file not found")
                raise SpawnError(self.command.path, "Go source file not found")

    def _fail(self, reason: str) -> None:
        self.state = WorkerState.FAILED
        self.last_error = reason

    async def _read_stdout(self) -> None:
        """Queue every stdout line, then the exit once the stream ends."""
        stream = self._process.stdout
        while True:
            try:
                line = await self._readline(stream)
            except ProtocolParseError as e:
                self._events.put_nowait(self._emit_fault(WorkerFault(parser=e.parser, data=e.raw)))
                continue
            if not line:
                break
            if not line.strip():
                continue
            self._events.put_nowait(self._decode_line(line))

        returncode = await self._process.wait()
        self._events.put_nowait(
            CompletionSignal(kind=SignalKind.PROCESS_EXITED, returncode=returncode)
        )

    @staticmethod
    async def _readline(stream: asyncio.StreamReader) -> bytes:
        """
        Read one line, returning b"" at end of stream.

        Raises:
            ProtocolParseError: If the line is longer than the stream limit.
                Carries the prefix read so far; the rest of the line is skipped.
        """
        try:
            return await stream.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            return e.partial
        except asyncio.LimitOverrunError as e:
            prefix = await stream.read(max(e.consumed, 1))

        while True:
            try:
                await stream.readuntil(b"\n")
                break
            except asyncio.IncompleteReadError:
                break
            except asyncio.LimitOverrunError as e:
                await stream.read(max(e.consumed, 1))

        raise ProtocolParseError(
            f"Worker output line exceeds the stream limit ({len(prefix)} bytes kept)",
            raw=prefix,
            parser=True,
        )

    async def _read_stderr(self) -> None:
        stream = self._process.stderr
        while True:
            try:
                line = await stream.readline()
            except ValueError:
                self.log.warning("Worker stderr: line exceeds the stream limit, skipped")
                continue
            if not line:
                break
            text = line.decode("utf-8", errors="replace").rstrip()
            if text:
                self.log.warning(f"Worker stderr: {text}")

    def _decode_line(self, line: bytes) -> CompletionSignal:
        try:
            payload = decode_line(line)
        except ProtocolParseError as e:
            return self._emit_fault(WorkerFault(parser=e.parser, data=e.raw))

        return CompletionSignal(kind=SignalKind.REPLY, payload=payload, raw=line)

    def _emit_fault(self, fault: WorkerFault) -> CompletionSignal:
        completion = CompletionSignal(
            kind=SignalKind.PROCESS_ERRORED,
            raw=fault.data,
            parser=fault.parser,
        )
        for listener in self._fault_listeners:
            listener(fault)
        return completion
