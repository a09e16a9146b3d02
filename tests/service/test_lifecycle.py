"""Tests for the service lifecycle state machine."""

import pytest

from bootseq.errors import ConfigurationError, ServiceStateError
from bootseq.service import ActionService, Service, ServiceState
from bootseq.service.models import (
    ServiceKind,
    ServiceStateChange,
    is_valid_transition,
)


class TestTransitionTable:
    """Test the lifecycle transition table."""

    def test_forward_transitions_allowed(self):
        assert is_valid_transition(ServiceState.CREATED, ServiceState.INITIALIZED)
        assert is_valid_transition(ServiceState.INITIALIZED, ServiceState.STARTED)
        assert is_valid_transition(ServiceState.STARTED, ServiceState.STOPPED)

    def test_failed_only_from_initialized_or_started(self):
        assert is_valid_transition(ServiceState.INITIALIZED, ServiceState.FAILED)
        assert is_valid_transition(ServiceState.STARTED, ServiceState.FAILED)
        assert not is_valid_transition(ServiceState.CREATED, ServiceState.FAILED)

    def test_terminal_states_have_no_exits(self):
        for state in ServiceState:
            assert not is_valid_transition(ServiceState.STOPPED, state)
            assert not is_valid_transition(ServiceState.FAILED, state)

    def test_no_backward_transitions(self):
        assert not is_valid_transition(ServiceState.STARTED, ServiceState.INITIALIZED)
        assert not is_valid_transition(ServiceState.INITIALIZED, ServiceState.CREATED)


class TestServiceLifecycle:
    """Test init/start/stop on the base service."""

    def test_new_service_is_created(self):
        service = Service("unit")
        assert service.state == ServiceState.CREATED
        assert service.failure_cause is None
        assert service.kind == ServiceKind.STEP

    def test_init_start_stop(self):
        service = Service("unit")
        service.init({})
        assert service.is_in_state(ServiceState.INITIALIZED)
        service.start()
        assert service.is_in_state(ServiceState.STARTED)
        service.stop()
        assert service.is_in_state(ServiceState.STOPPED)
        assert service.is_terminal

    def test_init_twice_rejected(self):
        service = Service("unit")
        service.init()
        with pytest.raises(ServiceStateError) as exc_info:
            service.init()
        assert exc_info.value.current_state == "initialized"

    def test_start_without_init_rejected(self):
        service = Service("unit")
        with pytest.raises(ServiceStateError):
            service.start()
        assert service.state == ServiceState.CREATED

    def test_invalid_config_rejected_at_init(self):
        service = Service("unit")
        with pytest.raises(ConfigurationError) as exc_info:
            service.init({"process": {"kill_grace_seconds": -1}})
        assert exc_info.value.errors[0].field == "process.kill_grace_seconds"
        assert service.state == ServiceState.CREATED

    def test_stop_from_created(self):
        service = Service("unit")
        service.stop()
        assert service.state == ServiceState.STOPPED

    def test_stop_is_idempotent(self):
        calls = []

        class Counting(Service):
            def service_stop(self):
                calls.append(self.name)

        service = Counting("unit")
        service.init()
        service.start()
        service.stop()
        service.stop()
        assert calls == ["unit"]

    def test_start_failure_marks_failed_and_reraises(self):
        class Broken(Service):
            def service_start(self):
                raise RuntimeError("boom")

        service = Broken("unit")
        service.init()
        with pytest.raises(RuntimeError):
            service.start()
        assert service.state == ServiceState.FAILED
        assert str(service.failure_cause) == "boom"

    def test_first_failure_cause_wins(self):
        service = Service("unit")
        service.init()
        service.start()
        first = RuntimeError("first")
        assert service.fail(first) is True
        assert service.fail(RuntimeError("second")) is False
        assert service.failure_cause is first

    def test_cannot_fail_after_stop(self):
        service = Service("unit")
        service.init()
        service.start()
        service.stop()
        assert service.fail(RuntimeError("late")) is False
        assert service.state == ServiceState.STOPPED

    def test_wait_for_terminal(self):
        service = Service("unit")
        service.init()
        service.start()
        assert service.wait_for_terminal(timeout=0.01) is False
        service.stop()
        assert service.wait_for_terminal(timeout=0.01) is True


class TestListeners:
    """Test state change notification."""

    def test_listener_sees_every_transition(self):
        changes = []
        service = Service("unit")
        service.register_listener(changes.append)

        service.init()
        service.start()
        service.stop()

        assert [(c.from_state, c.to_state) for c in changes] == [
            (ServiceState.CREATED, ServiceState.INITIALIZED),
            (ServiceState.INITIALIZED, ServiceState.STARTED),
            (ServiceState.STARTED, ServiceState.STOPPED),
        ]
        assert all(isinstance(c, ServiceStateChange) for c in changes)
        assert all(c.service is service for c in changes)

    def test_failure_change_carries_cause(self):
        changes = []
        service = Service("unit")
        service.register_listener(changes.append)
        service.init()
        service.start()
        cause = ValueError("bad")
        service.fail(cause)

        assert changes[-1].failed
        assert changes[-1].cause is cause

    def test_unregistered_listener_not_called(self):
        changes = []
        service = Service("unit")
        service.register_listener(changes.append)
        service.unregister_listener(changes.append)
        service.init()
        assert changes == []

    def test_raising_listener_does_not_break_transition(self):
        seen = []

        def bad_listener(change):
            raise RuntimeError("listener bug")

        service = Service("unit")
        service.register_listener(bad_listener)
        service.register_listener(seen.append)
        service.init()

        assert service.state == ServiceState.INITIALIZED
        assert len(seen) == 1


class TestActionService:
    """Test the in-process control step."""

    def test_action_runs_and_stops(self):
        calls = []
        step = ActionService("write-config", lambda: calls.append("written") or "ok")
        step.init()
        step.start()

        assert calls == ["written"]
        assert step.result == "ok"
        assert step.state == ServiceState.STOPPED

    def test_action_failure_fails_step(self):
        def explode():
            raise OSError("disk full")

        step = ActionService("write-config", explode)
        step.init()
        with pytest.raises(OSError):
            step.start()
        assert step.state == ServiceState.FAILED
        assert isinstance(step.failure_cause, OSError)
