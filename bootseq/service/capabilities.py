"""
Capability protocols implemented independently by services and errors.
"""

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .lifecycle import Service


@runtime_checkable
class ExitCodeProvider(Protocol):
    """Anything that can report a process-style exit code."""

    def get_exit_code(self) -> Optional[int]: ...


@runtime_checkable
class ServiceParent(Protocol):
    """A container whose children may be searched."""

    @property
    def children(self) -> list["Service"]: ...

    def add(self, child: "Service") -> None: ...
