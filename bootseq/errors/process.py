"""
Process error classifications.

Every error here that maps onto a process-style exit status exposes it
through ``get_exit_code()`` so exit-code resolution can surface it unchanged.
"""

from typing import Optional, Sequence

from .exit_codes import EXIT_COMMAND_ARGUMENT_ERROR, EXIT_TASK_LAUNCH_FAILURE


class ProcessError(Exception):
    """Base class for forked process failures."""

    def __init__(self, message: str, process_name: Optional[str] = None):
        super().__init__(message)
        self.process_name = process_name
        self.recoverable = False


class BadCommandArgumentsError(ProcessError):
    """Command line or environment rejected before anything was spawned."""

    def __init__(self, message: str, process_name: Optional[str] = None,
                 command: Optional[Sequence[str]] = None):
        super().__init__(message, process_name=process_name)
        self.command = list(command) if command is not None else None
        self.exit_code = EXIT_COMMAND_ARGUMENT_ERROR

    def get_exit_code(self) -> int:
        return self.exit_code


class ProcessSpawnError(ProcessError):
    """The OS refused to create the process."""

    def __init__(self, message: str, process_name: Optional[str] = None,
                 command: Optional[Sequence[str]] = None,
                 os_error: Optional[OSError] = None):
        super().__init__(message, process_name=process_name)
        self.command = list(command) if command is not None else None
        self.os_error = os_error
        self.exit_code = EXIT_TASK_LAUNCH_FAILURE

    def get_exit_code(self) -> int:
        return self.exit_code


class ProcessExitError(ProcessError):
    """The process terminated with a nonzero exit code."""

    def __init__(self, message: str, exit_code: int,
                 process_name: Optional[str] = None):
        super().__init__(message, process_name=process_name)
        self.exit_code = exit_code

    def get_exit_code(self) -> int:
        return self.exit_code
