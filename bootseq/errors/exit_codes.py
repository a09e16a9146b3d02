"""Launcher exit codes surfaced to whatever invoked a bootstrap sequence."""

EXIT_SUCCESS = 0
EXIT_FAIL = 1
EXIT_TASK_LAUNCH_FAILURE = 2
EXIT_COMMAND_ARGUMENT_ERROR = 40
