"""
Composite group of services.

A group holds children without ordering. Starting the group starts every
child; the group fails with the first child failure and stops once all of its
children have stopped.
"""

from typing import Iterable, Optional

from ..errors import SequencingError
from ..logging.config import get_lifecycle_logger
from .events import ChildEventQueue
from .lifecycle import Service, stop_all
from .models import ServiceKind, ServiceState, ServiceStateChange

logger = get_lifecycle_logger(__name__)


class CompositeService(Service):
    """Unordered, non-advancing container of services."""

    kind = ServiceKind.GROUP

    def __init__(self, name: str, children: Optional[Iterable[Service]] = None) -> None:
        super().__init__(name)
        self._children: list[Service] = []
        self._events = ChildEventQueue(self.lifecycle.lock, self._on_child_change)
        for child in children or ():
            self.add(child)

    @property
    def children(self) -> list[Service]:
        with self.lifecycle.lock:
            return list(self._children)

    def add(self, child: Service) -> None:
        """
        Add a child; a child added to a running group is started at once.

        Raises:
            SequencingError: If the group already stopped or failed
        """
        with self.lifecycle.lock:
            if self.is_terminal:
                raise SequencingError(
                    f"Cannot add '{child.name}' to group '{self.name}' "
                    f"in state {self.state.value}",
                    sequence_name=self.name,
                    sequence_state=self.state.value,
                )
            if child in self._children:
                return
            self._children.append(child)
            child.register_listener(self._events.post)
            if self.is_in_state(ServiceState.STARTED) and not self.lifecycle.stopping:
                self._events.run(lambda: self._start_child(child))

    def remove(self, child: Service) -> bool:
        """
        Remove a child; a child removed from a running group is stopped.

        Raises:
            SequencingError: If the group already stopped or failed
        """
        with self.lifecycle.lock:
            if self.is_terminal:
                raise SequencingError(
                    f"Cannot remove '{child.name}' from group '{self.name}' "
                    f"in state {self.state.value}",
                    sequence_name=self.name,
                    sequence_state=self.state.value,
                )
            if child not in self._children:
                return False
            self._children.remove(child)
            child.unregister_listener(self._events.post)
            if self.is_in_state(ServiceState.STARTED) and not self.lifecycle.stopping:
                self._events.run(lambda: self._release_child(child))
            return True

    def service_init(self, config: dict) -> None:
        for child in self.children:
            if child.is_in_state(ServiceState.CREATED):
                child.init(config)

    def service_start(self) -> None:
        self._events.run(self._start_children)

    def service_stop(self) -> None:
        error = stop_all(self.children, self.name)
        if error is not None:
            raise error

    def _start_children(self) -> None:
        if not self._children:
            self.lifecycle.complete(ServiceState.STOPPED, "group_empty")
            return
        for child in list(self._children):
            self._start_child(child)
            if child.state == ServiceState.FAILED or self.is_terminal:
                break

    def _start_child(self, child: Service) -> None:
        try:
            if child.is_in_state(ServiceState.CREATED):
                child.init(self.config)
            child.start()
        except Exception as exc:
            if child.state != ServiceState.FAILED:
                self.fail(exc, trigger="child_start_failed")
            else:
                logger.debug("Child failed on start", service=self.name, child=child.name)

    def _release_child(self, child: Service) -> None:
        if not child.is_terminal:
            child.stop()
        self._complete_if_all_stopped()

    def _complete_if_all_stopped(self) -> None:
        if self.is_in_state(ServiceState.STARTED) and all(
            child.is_in_state(ServiceState.STOPPED) for child in self._children
        ):
            self.lifecycle.complete(ServiceState.STOPPED, "group_completed")

    def _on_child_change(self, change: ServiceStateChange) -> None:
        if change.service not in self._children:
            return
        if self.is_terminal or self.lifecycle.stopping:
            return

        if change.failed:
            if self.fail(change.cause or change.service.failure_cause, trigger="child_failed"):
                stop_all(
                    [child for child in self._children if child is not change.service],
                    self.name,
                )
        elif change.succeeded:
            self._complete_if_all_stopped()
