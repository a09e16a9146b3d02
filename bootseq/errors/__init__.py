"""
Error classification for service sequencing and process supervision.

This module provides the exception hierarchy used across the lifecycle state
machine, the containers and the forked process steps. Errors that carry a
process-style exit code expose it through ``get_exit_code()``.
"""

from .exit_codes import (
    EXIT_SUCCESS,
    EXIT_FAIL,
    EXIT_TASK_LAUNCH_FAILURE,
    EXIT_COMMAND_ARGUMENT_ERROR,
)
from .lifecycle import (
    ServiceError,
    ServiceStateError,
    SequencingError,
    ConfigurationError,
)
from .process import (
    ProcessError,
    BadCommandArgumentsError,
    ProcessSpawnError,
    ProcessExitError,
)

__all__ = [
    # Exit codes
    "EXIT_SUCCESS",
    "EXIT_FAIL",
    "EXIT_TASK_LAUNCH_FAILURE",
    "EXIT_COMMAND_ARGUMENT_ERROR",
    # Lifecycle
    "ServiceError",
    "ServiceStateError",
    "SequencingError",
    "ConfigurationError",
    # Processes
    "ProcessError",
    "BadCommandArgumentsError",
    "ProcessSpawnError",
    "ProcessExitError",
]
