"""
Service lifecycle, containers and forked process steps.

Units move through CREATED → INITIALIZED → STARTED → STOPPED, with FAILED
reachable from INITIALIZED or STARTED. Sequences start their children one at
a time and halt on the first failure.
"""
from .action import ActionService
from .composite import CompositeService
from .exit_codes import find_process, latest_process, resolve_exit_code
from .lifecycle import Service, ServiceLifecycle
from .models import ServiceKind, ServiceState, ServiceStateChange
from .process import ForkedProcessService
from .sequence import SequenceService

__all__ = [
    "ActionService",
    "CompositeService",
    "ForkedProcessService",
    "SequenceService",
    "Service",
    "ServiceLifecycle",
    "ServiceKind",
    "ServiceState",
    "ServiceStateChange",
    "find_process",
    "latest_process",
    "resolve_exit_code",
]
