"""
Service lifecycle state machine.

``ServiceLifecycle`` is the small, thread-safe state machine embedded in every
unit. ``Service`` wraps it with the init/start/stop contract and the hooks
that steps and containers override.
"""

import threading
from typing import Any, Callable, Optional

from ..config.validation import ConfigValidator
from ..errors import ConfigurationError, ServiceStateError
from ..logging.config import get_lifecycle_logger, log_state_transition
from .models import (
    TERMINAL_STATES,
    ServiceKind,
    ServiceState,
    ServiceStateChange,
    is_valid_transition,
)

logger = get_lifecycle_logger(__name__)

StateListener = Callable[[ServiceStateChange], None]


class ServiceLifecycle:
    """Lifecycle state, failure cause and listeners of a single service."""

    def __init__(self, owner: "Service") -> None:
        self.owner = owner
        self.lock = threading.RLock()
        self.stopping = False
        self._state = ServiceState.CREATED
        self._failure_cause: Optional[BaseException] = None
        self._listeners: list[StateListener] = []
        self._terminated = threading.Event()

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def failure_cause(self) -> Optional[BaseException]:
        return self._failure_cause

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    def add_listener(self, listener: StateListener) -> None:
        with self.lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        with self.lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def note_failure(self, cause: BaseException) -> None:
        """Record a failure cause; the first one recorded wins."""
        with self.lock:
            if self._failure_cause is None:
                self._failure_cause = cause

    def transition(self, to_state: ServiceState, trigger: str,
                   cause: Optional[BaseException] = None) -> ServiceStateChange:
        """
        Move to ``to_state`` and notify listeners.

        Raises:
            ServiceStateError: If the lifecycle table forbids the transition
        """
        with self.lock:
            change = self._apply(to_state, trigger, cause)
        self._notify(change)
        return change

    def complete(self, to_state: ServiceState, trigger: str,
                 cause: Optional[BaseException] = None) -> Optional[ServiceStateChange]:
        """
        Move to a terminal state unless the unit already finished or is stopping.

        Returns:
            The applied change, or None if the unit was already terminal
        """
        with self.lock:
            if self.is_terminal or self.stopping:
                return None
            change = self._apply(to_state, trigger, cause)
        self._notify(change)
        return change

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._terminated.wait(timeout)

    def _apply(self, to_state: ServiceState, trigger: str,
               cause: Optional[BaseException]) -> ServiceStateChange:
        from_state = self._state
        if not is_valid_transition(from_state, to_state):
            raise ServiceStateError(
                f"Service '{self.owner.name}' cannot move from {from_state.value} "
                f"to {to_state.value}",
                current_state=from_state.value,
                attempted_transition=f"{from_state.value}->{to_state.value}",
            )

        if cause is not None:
            self.note_failure(cause)

        self._state = to_state
        if to_state in TERMINAL_STATES:
            self._terminated.set()

        context = {"kind": self.owner.kind.value}
        if to_state == ServiceState.FAILED and self._failure_cause is not None:
            context["cause"] = repr(self._failure_cause)
        log_state_transition(
            logger,
            service_name=self.owner.name,
            from_state=from_state.value,
            to_state=to_state.value,
            trigger=trigger,
            context=context,
        )

        return ServiceStateChange(
            service=self.owner,
            from_state=from_state,
            to_state=to_state,
            cause=self._failure_cause if to_state == ServiceState.FAILED else None,
        )

    def _notify(self, change: ServiceStateChange) -> None:
        with self.lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(change)
            except Exception:
                logger.exception(
                    "Service state listener raised",
                    service=self.owner.name,
                    to_state=change.to_state.value,
                )


class Service:
    """
    Base unit of work with the init/start/stop lifecycle.

    Subclasses override ``service_init``, ``service_start`` and
    ``service_stop``. Steps that finish on their own report completion with
    ``lifecycle.complete(...)`` or ``fail(...)``.
    """

    kind: ServiceKind = ServiceKind.STEP

    def __init__(self, name: str) -> None:
        self.name = name
        self.config: dict[str, Any] = {}
        self.lifecycle = ServiceLifecycle(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, state={self.state.value})"

    @property
    def state(self) -> ServiceState:
        return self.lifecycle.state

    @property
    def failure_cause(self) -> Optional[BaseException]:
        return self.lifecycle.failure_cause

    @property
    def is_terminal(self) -> bool:
        return self.lifecycle.is_terminal

    def is_in_state(self, state: ServiceState) -> bool:
        return self.lifecycle.state == state

    def register_listener(self, listener: StateListener) -> None:
        self.lifecycle.add_listener(listener)

    def unregister_listener(self, listener: StateListener) -> None:
        self.lifecycle.remove_listener(listener)

    def wait_for_terminal(self, timeout: Optional[float] = None) -> bool:
        """Block until the service is STOPPED or FAILED; False on timeout."""
        return self.lifecycle.wait(timeout)

    def init(self, config: Optional[dict[str, Any]] = None) -> None:
        """
        Validate configuration and move CREATED → INITIALIZED.

        Raises:
            ServiceStateError: If the service is not in CREATED
            ConfigurationError: If the configuration is invalid
        """
        if not self.is_in_state(ServiceState.CREATED):
            raise ServiceStateError(
                f"Service '{self.name}' cannot be initialized in state {self.state.value}",
                current_state=self.state.value,
                attempted_transition="init",
            )

        config = config or {}
        errors = ConfigValidator.validate(config)
        if errors:
            raise ConfigurationError(
                f"Invalid configuration for service '{self.name}': "
                + "; ".join(f"{err.field}: {err.message} (got: {err.value!r})" for err in errors),
                errors=errors,
            )

        self.config = dict(config)
        self.service_init(self.config)
        self.lifecycle.transition(ServiceState.INITIALIZED, "init")

    def start(self) -> None:
        """
        Move INITIALIZED → STARTED and begin the service's work.

        An exception from the work hook fails the service and is re-raised.
        """
        self.lifecycle.transition(ServiceState.STARTED, "start")
        try:
            self.service_start()
        except Exception as exc:
            self.fail(exc, trigger="start_failed")
            raise

    def stop(self) -> None:
        """Release resources and move to STOPPED; no-op once terminal."""
        with self.lifecycle.lock:
            if self.is_terminal or self.lifecycle.stopping:
                return
            self.lifecycle.stopping = True
        try:
            self.service_stop()
        finally:
            self.lifecycle.transition(ServiceState.STOPPED, "stop")

    def fail(self, cause: BaseException, trigger: str = "failure") -> bool:
        """
        Move to FAILED with ``cause`` recorded.

        Returns:
            False if the service had already finished or is being stopped
        """
        return self.lifecycle.complete(ServiceState.FAILED, trigger, cause) is not None

    def service_init(self, config: dict[str, Any]) -> None:
        pass

    def service_start(self) -> None:
        pass

    def service_stop(self) -> None:
        pass


def stop_all(services: list[Service], owner_name: str) -> Optional[Exception]:
    """
    Stop every service in reverse order.

    Returns:
        The first exception raised by a ``stop()`` call, after all were tried
    """
    first_error: Optional[Exception] = None
    for service in reversed(services):
        try:
            service.stop()
        except Exception as exc:
            logger.warning(
                "Failed to stop child service",
                service=owner_name,
                child=service.name,
                error=str(exc),
            )
            if first_error is None:
                first_error = exc
    return first_error
