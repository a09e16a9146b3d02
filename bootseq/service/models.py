"""
Service lifecycle data models.

This module defines the lifecycle states, the kind tag used to tell steps
from containers, and the immutable state-change record delivered to
listeners.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .lifecycle import Service


class ServiceState(str, Enum):
    """Service lifecycle states."""
    CREATED = "created"
    INITIALIZED = "initialized"
    STARTED = "started"
    STOPPED = "stopped"
    FAILED = "failed"


class ServiceKind(str, Enum):
    """Kind tag for every unit a container can hold."""
    STEP = "step"
    PROCESS = "process"
    GROUP = "group"
    SEQUENCE = "sequence"


TERMINAL_STATES = frozenset({ServiceState.STOPPED, ServiceState.FAILED})

CONTAINER_KINDS = frozenset({ServiceKind.GROUP, ServiceKind.SEQUENCE})

VALID_TRANSITIONS = {
    ServiceState.CREATED: frozenset({ServiceState.INITIALIZED, ServiceState.STOPPED}),
    ServiceState.INITIALIZED: frozenset({
        ServiceState.STARTED, ServiceState.STOPPED, ServiceState.FAILED
    }),
    ServiceState.STARTED: frozenset({ServiceState.STOPPED, ServiceState.FAILED}),
    ServiceState.STOPPED: frozenset(),
    ServiceState.FAILED: frozenset(),
}


def is_valid_transition(from_state: ServiceState, to_state: ServiceState) -> bool:
    """Check a transition against the lifecycle table."""
    return to_state in VALID_TRANSITIONS[from_state]


@dataclass(frozen=True)
class ServiceStateChange:
    """A single lifecycle transition of one service."""

    service: "Service"
    from_state: ServiceState
    to_state: ServiceState
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    cause: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.to_state == ServiceState.STOPPED

    @property
    def failed(self) -> bool:
        return self.to_state == ServiceState.FAILED
