"""
Exit-code resolution for a sequence.

The caller-visible exit status of a bootstrap sequence is, in order of
precedence: the code carried by the sequence's failure cause, the exit code of
the latest process step, and finally 0.
"""

from typing import TYPE_CHECKING, Optional, cast

from ..errors import EXIT_SUCCESS
from .capabilities import ExitCodeProvider, ServiceParent
from .models import CONTAINER_KINDS, ServiceKind

if TYPE_CHECKING:
    from .lifecycle import Service
    from .process import ForkedProcessService
    from .sequence import SequenceService

# Known limitation: processes nested deeper than one container level are not found.
LATEST_PROCESS_SEARCH_DEPTH = 1


def find_process(
    service: Optional["Service"],
    depth: int = LATEST_PROCESS_SEARCH_DEPTH
) -> Optional["ForkedProcessService"]:
    """
    Find the first process step at or below ``service``.

    Args:
        service: Service to inspect
        depth: How many container levels to descend

    Returns:
        The service itself if it is a process, else the first process found
        among a container's children within ``depth`` levels, else None
    """
    if service is None:
        return None
    if service.kind == ServiceKind.PROCESS:
        return service  # type: ignore[return-value]
    if service.kind in CONTAINER_KINDS and depth > 0:
        for child in cast(ServiceParent, service).children:
            found = find_process(child, depth - 1)
            if found is not None:
                return found
    return None


def latest_process(sequence: "SequenceService") -> Optional["ForkedProcessService"]:
    """The process step of the sequence's active child, else its previous child."""
    return find_process(sequence.latest_child)


def failure_exit_code(cause: Optional[BaseException]) -> Optional[int]:
    """Exit code carried by a failure cause, if it carries one."""
    if cause is not None and isinstance(cause, ExitCodeProvider):
        return cause.get_exit_code()
    return None


def resolve_exit_code(sequence: "SequenceService") -> int:
    """Resolve the process-style exit code of a whole sequence."""
    code = failure_exit_code(sequence.failure_cause)
    if code is not None:
        return code

    process = latest_process(sequence)
    if process is None:
        return EXIT_SUCCESS

    code = process.get_exit_code()
    return EXIT_SUCCESS if code is None else code
