"""
Sequence runner.

Starts its children one at a time in the order they were added. A child that
stops successfully lets the next one start; the first child failure fails the
whole sequence with that child's cause and nothing after it is started.
"""

from typing import Optional

from ..config.defaults import SequenceParams
from ..errors import SequencingError
from ..logging.config import get_lifecycle_logger
from .events import ChildEventQueue
from .lifecycle import Service, stop_all
from .models import ServiceKind, ServiceState, ServiceStateChange

logger = get_lifecycle_logger(__name__)


class SequenceService(Service):
    """
    Ordered, auto-advancing container of services.

    Children may be added at any time before the sequence finishes. When the
    last child has stopped the sequence stops too, unless it was created with
    ``stop_when_exhausted=False``; it then stays STARTED and idle, runs any
    step queued later, and finishes only when ``stop()`` is called.
    """

    kind = ServiceKind.SEQUENCE

    def __init__(self, name: str, stop_when_exhausted: Optional[bool] = None) -> None:
        super().__init__(name)
        self._children: list[Service] = []
        self._cursor = 0
        self._current: Optional[Service] = None
        self._previous: Optional[Service] = None
        self._stop_when_exhausted_arg = stop_when_exhausted
        self.stop_when_exhausted = True if stop_when_exhausted is None else stop_when_exhausted
        self._events = ChildEventQueue(self.lifecycle.lock, self._on_child_change)

    @property
    def children(self) -> list[Service]:
        with self.lifecycle.lock:
            return list(self._children)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> Optional[Service]:
        """The child currently running, if any."""
        return self._current

    @property
    def previous(self) -> Optional[Service]:
        """The child that most recently finished or was attempted."""
        return self._previous

    @property
    def latest_child(self) -> Optional[Service]:
        with self.lifecycle.lock:
            return self._current if self._current is not None else self._previous

    @property
    def is_idle(self) -> bool:
        return self._current is None

    def add(self, child: Service) -> None:
        """
        Append a child to the sequence.

        Raises:
            SequencingError: If the sequence already stopped or failed, or
                already holds this child
        """
        with self.lifecycle.lock:
            if self.is_terminal:
                raise SequencingError(
                    f"Cannot add '{child.name}' to sequence '{self.name}' "
                    f"in state {self.state.value}",
                    sequence_name=self.name,
                    sequence_state=self.state.value,
                )
            if child in self._children:
                raise SequencingError(
                    f"Service '{child.name}' is already queued in sequence '{self.name}'",
                    sequence_name=self.name,
                    sequence_state=self.state.value,
                )
            self._children.append(child)
            logger.debug(
                "Queued service",
                service=self.name,
                child=child.name,
                position=len(self._children) - 1,
            )

    def start_next(self) -> None:
        """Start the child at the cursor if the sequence is running and idle."""
        self._events.run(self._start_next)

    def maybe_advance_if_running(self) -> None:
        """Start a newly queued child at once if the sequence is STARTED and idle."""
        with self.lifecycle.lock:
            if not self.is_in_state(ServiceState.STARTED) or self._current is not None:
                logger.debug(
                    "Not advancing sequence",
                    service=self.name,
                    state=self.state.value,
                    active=self._current.name if self._current is not None else None,
                )
                return
            self.start_next()

    def service_init(self, config: dict) -> None:
        if self._stop_when_exhausted_arg is None:
            self.stop_when_exhausted = SequenceParams.from_config(config).stop_when_exhausted
        for child in self.children:
            if child.is_in_state(ServiceState.CREATED):
                child.init(config)

    def service_start(self) -> None:
        self._events.run(self._start_next)

    def service_stop(self) -> None:
        with self.lifecycle.lock:
            active = self._current
            pending = [child for child in self._children if child is not active]
        if active is not None:
            active.stop()
        error = stop_all(pending, self.name)
        if error is not None:
            raise error

    def _start_next(self) -> None:
        if (not self.is_in_state(ServiceState.STARTED)
                or self.lifecycle.stopping
                or self._current is not None):
            return

        if self._cursor >= len(self._children):
            if self.stop_when_exhausted:
                self.lifecycle.complete(ServiceState.STOPPED, "sequence_completed")
            return

        child = self._children[self._cursor]
        self._current = child
        child.register_listener(self._events.post)
        logger.info(
            "Starting next service",
            service=self.name,
            child=child.name,
            position=self._cursor,
        )
        try:
            if child.is_in_state(ServiceState.CREATED):
                child.init(self.config)
            child.start()
        except Exception as exc:
            if child.state == ServiceState.FAILED:
                # the FAILED change is already queued
                return
            self._finish_current(child)
            self.fail(exc, trigger="child_start_failed")

    def _on_child_change(self, change: ServiceStateChange) -> None:
        child = change.service
        if child is not self._current:
            return

        if change.succeeded:
            self._finish_current(child)
            if self.lifecycle.stopping:
                return
            self._cursor += 1
            self._start_next()
        elif change.failed:
            self._finish_current(child)
            self.fail(change.cause or child.failure_cause, trigger="child_failed")

    def _finish_current(self, child: Service) -> None:
        child.unregister_listener(self._events.post)
        self._previous = child
        self._current = None
