"""
Forked process step.

Wraps one OS process: spawning it with a given environment and argument
vector, logging its output, and reporting its exit code asynchronously
through a watcher thread.
"""

import os
import subprocess
import threading
from collections import deque
from typing import IO, Callable, Mapping, Optional, Sequence

import psutil

from ..config.defaults import ProcessParams
from ..errors import BadCommandArgumentsError, ProcessExitError, ProcessSpawnError
from ..logging.config import get_process_logger
from .lifecycle import Service
from .models import ServiceKind, ServiceState

READER_JOIN_SECONDS = 2.0


def normalize_exit_code(returncode: int) -> int:
    """Map a Popen return code to a shell-style status (signal N → 128 + N)."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def terminate_process_tree(process: subprocess.Popen, grace_seconds: float) -> None:
    """
    Terminate a process and all of its descendants.

    Sends SIGTERM first, waits up to ``grace_seconds`` and then kills
    whatever is still alive. The direct child is left for its own watcher to
    reap.
    """
    try:
        descendants = psutil.Process(process.pid).children(recursive=True)
    except psutil.NoSuchProcess:
        descendants = []

    process.terminate()
    for proc in descendants:
        try:
            proc.terminate()
        except psutil.NoSuchProcess:
            continue

    try:
        process.wait(timeout=grace_seconds)
    except subprocess.TimeoutExpired:
        process.kill()

    _, alive = psutil.wait_procs(descendants, timeout=grace_seconds)
    for proc in alive:
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            continue


class ProcessWatcher:
    """Waits on one OS process and reports its normalised exit code."""

    def __init__(self, process: subprocess.Popen, on_exit: Callable[[int], None],
                 name: str, readers: Sequence[threading.Thread] = ()) -> None:
        self.process = process
        self.on_exit = on_exit
        self.readers = list(readers)
        self._thread = threading.Thread(target=self._run, name=f"{name}-watcher", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    def _run(self) -> None:
        returncode = self.process.wait()
        # let the readers flush the tail of the output first
        for reader in self.readers:
            reader.join(READER_JOIN_SECONDS)
        self.on_exit(normalize_exit_code(returncode))


class ForkedProcessService(Service):
    """
    A step that runs one external process.

    ``start()`` returns as soon as the process is spawned. The step stops
    when the process exits with 0 and fails with a ``ProcessExitError``
    otherwise. Stopping the step terminates the process.
    """

    kind = ServiceKind.PROCESS

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.environment: dict[str, str] = {}
        self.command: list[str] = []
        self.params = ProcessParams()
        self.recent_output: deque = deque(maxlen=self.params.output_buffer_lines)
        self.process_logger = get_process_logger(__name__, name)
        self._process: Optional[subprocess.Popen] = None
        self._watcher: Optional[ProcessWatcher] = None
        self._exit_code: Optional[int] = None

    def build(self, environment: Optional[Mapping[str, str]], command: Sequence[str]) -> None:
        """
        Record the environment and argument vector for the process.

        Raises:
            BadCommandArgumentsError: If the command is empty or not a list of
                strings, or the environment is not a string mapping
        """
        if command is None or isinstance(command, (str, bytes)):
            raise BadCommandArgumentsError(
                f"Command for process '{self.name}' must be a sequence of arguments",
                process_name=self.name,
            )
        commands = list(command)
        if not commands:
            raise BadCommandArgumentsError(
                f"Empty command for process '{self.name}'",
                process_name=self.name,
                command=commands,
            )
        if not all(isinstance(arg, str) for arg in commands) or not commands[0]:
            raise BadCommandArgumentsError(
                f"Invalid command for process '{self.name}': {commands!r}",
                process_name=self.name,
                command=commands,
            )

        env = dict(environment or {})
        bad_keys = [key for key, value in env.items()
                    if not isinstance(key, str) or not isinstance(value, str)]
        if bad_keys:
            raise BadCommandArgumentsError(
                f"Environment for process '{self.name}' must map strings to strings; "
                f"bad entries: {bad_keys!r}",
                process_name=self.name,
                command=commands,
            )

        self.environment = env
        self.command = commands

    @property
    def exit_code(self) -> Optional[int]:
        return self._exit_code

    def get_exit_code(self) -> Optional[int]:
        """Exit code of the process, or None if it has not terminated."""
        return self._exit_code

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process is not None else None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def get_recent_output(self) -> list[str]:
        return list(self.recent_output)

    def service_init(self, config: dict) -> None:
        self.params = ProcessParams.from_config(config)
        self.recent_output = deque(maxlen=self.params.output_buffer_lines)

    def service_start(self) -> None:
        if not self.command:
            raise BadCommandArgumentsError(
                f"Process '{self.name}' started without a command",
                process_name=self.name,
            )

        env = dict(os.environ) if self.params.inherit_environment else {}
        env.update(self.environment)

        try:
            self._process = subprocess.Popen(
                self.command,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as exc:
            raise ProcessSpawnError(
                f"Failed to launch process '{self.name}': {exc}",
                process_name=self.name,
                command=self.command,
                os_error=exc,
            ) from exc

        self.process_logger.info(
            "Process launched",
            pid=self._process.pid,
            command=" ".join(self.command),
        )

        readers = [
            self._start_reader(self._process.stdout, "stdout"),
            self._start_reader(self._process.stderr, "stderr"),
        ]
        self._watcher = ProcessWatcher(
            self._process, self.on_process_exit, self.name, readers=readers
        )
        self._watcher.start()

    def service_stop(self) -> None:
        process = self._process
        if process is None or process.poll() is not None:
            return
        self.process_logger.info("Terminating process", pid=process.pid)
        terminate_process_tree(process, self.params.kill_grace_seconds)
        if self._watcher is not None:
            self._watcher.join(2 * READER_JOIN_SECONDS)

    def on_process_exit(self, exit_code: int) -> None:
        """
        Completion notification from the process watcher.

        The exit code is recorded once. A step that was already stopped keeps
        its STOPPED state.
        """
        with self.lifecycle.lock:
            if self._exit_code is not None:
                return
            self._exit_code = exit_code

        self.process_logger.info("Process exited", exit_code=exit_code)

        if exit_code == 0:
            self.lifecycle.complete(ServiceState.STOPPED, "process_exited")
        else:
            self.fail(
                ProcessExitError(
                    f"Process '{self.name}' exited with code {exit_code}",
                    exit_code=exit_code,
                    process_name=self.name,
                ),
                trigger="process_exited",
            )

    def _start_reader(self, stream: Optional[IO[bytes]], stream_name: str) -> threading.Thread:
        reader = threading.Thread(
            target=self._read_stream,
            args=(stream, stream_name),
            name=f"{self.name}-{stream_name}",
            daemon=True,
        )
        reader.start()
        return reader

    def _read_stream(self, stream: Optional[IO[bytes]], stream_name: str) -> None:
        if stream is None:
            return
        try:
            for raw in iter(stream.readline, b""):
                line = raw.decode("utf-8", errors="replace").rstrip()
                if not line:
                    continue
                self.recent_output.append(line)
                if self.params.log_output:
                    if stream_name == "stderr":
                        self.process_logger.warning("Process output", stream=stream_name, line=line)
                    else:
                        self.process_logger.info("Process output", stream=stream_name, line=line)
        finally:
            stream.close()
