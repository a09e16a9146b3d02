"""Plain in-process control step."""

from typing import Any, Callable

from .lifecycle import Service
from .models import ServiceKind, ServiceState


class ActionService(Service):
    """
    Runs a callable when started and stops as soon as it returns.

    Used for steps such as writing configuration files before the first
    process is launched. An exception from the callable fails the step.
    """

    kind = ServiceKind.STEP

    def __init__(self, name: str, action: Callable[[], Any]) -> None:
        super().__init__(name)
        self.action = action
        self.result: Any = None

    def service_start(self) -> None:
        self.result = self.action()
        self.lifecycle.complete(ServiceState.STOPPED, "action_completed")
