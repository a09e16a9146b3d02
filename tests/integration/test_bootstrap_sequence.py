"""End-to-end bootstrap sequences running real child processes."""

import pytest

from bootseq.errors import ProcessExitError, SequencingError
from bootseq.provider import ProviderService
from bootseq.service import ActionService, CompositeService, ServiceState

TIMEOUT = 20


def _exit_with(python_cmd, code):
    return python_cmd(f"import sys; sys.exit({code})")


class TestBootstrapScenarios:
    """Test the config → master → worker bootstrap flows."""

    def test_master_killed_halts_bootstrap(self, python_cmd, tmp_path):
        site = tmp_path / "site.yaml"
        provider = ProviderService("hbase")
        provider.init()
        provider.add_service(ActionService("write-config", lambda: site.write_text("ok: true\n")))
        master = provider.queue_command("launch-master", {}, _exit_with(python_cmd, 137))
        worker = provider.queue_command("launch-worker", {}, python_cmd("pass"))

        provider.start()
        assert provider.wait_for_terminal(timeout=TIMEOUT)

        assert site.read_text() == "ok: true\n"
        assert provider.sequence.children[0].state == ServiceState.STOPPED
        assert master.state == ServiceState.FAILED
        assert isinstance(master.failure_cause, ProcessExitError)
        assert master.failure_cause.exit_code == 137
        assert worker.state == ServiceState.INITIALIZED
        assert worker.pid is None
        assert provider.state == ServiceState.FAILED
        assert provider.failure_cause is master.failure_cause
        assert provider.get_exit_code() == 137

    def test_all_steps_succeed(self, python_cmd):
        provider = ProviderService("hbase")
        provider.init()
        steps = [provider.queue_command(f"step-{i}", {}, python_cmd("pass")) for i in range(3)]

        provider.start()
        assert provider.wait_for_terminal(timeout=TIMEOUT)

        assert provider.state == ServiceState.STOPPED
        assert all(step.exit_code == 0 for step in steps)
        assert provider.latest_process() is steps[-1]
        assert provider.get_exit_code() == 0

    def test_empty_bootstrap(self):
        provider = ProviderService("hbase")
        provider.init()
        provider.start()

        assert provider.state == ServiceState.STOPPED
        assert provider.get_exit_code() == 0

    def test_add_after_completion_rejected(self, python_cmd):
        provider = ProviderService("hbase")
        provider.init()
        step_a = provider.queue_command("step-a", {}, python_cmd("pass"))
        provider.start()
        assert provider.wait_for_terminal(timeout=TIMEOUT)
        assert step_a.state == ServiceState.STOPPED

        with pytest.raises(SequencingError):
            provider.queue_command("step-b", {}, python_cmd("pass"))
        assert len(provider.sequence.children) == 1

    @pytest.mark.parametrize("steps, failing", [(1, 1), (3, 1), (3, 2), (3, 3), (5, 4)])
    def test_first_failure_stops_later_steps(self, python_cmd, steps, failing):
        provider = ProviderService("hbase")
        provider.init()
        queued = []
        for k in range(1, steps + 1):
            code = 3 if k == failing else 0
            queued.append(provider.queue_command(f"step-{k}", {}, _exit_with(python_cmd, code)))

        provider.start()
        assert provider.wait_for_terminal(timeout=TIMEOUT)

        for step in queued[:failing - 1]:
            assert step.state == ServiceState.STOPPED
            assert step.exit_code == 0
        assert queued[failing - 1].state == ServiceState.FAILED
        for step in queued[failing:]:
            assert step.state == ServiceState.INITIALIZED
            assert step.pid is None
        assert provider.get_exit_code() == 3

    def test_spawn_failure_fails_bootstrap(self, python_cmd):
        provider = ProviderService("hbase")
        provider.init()
        missing = provider.queue_command("launch-master", {}, ["/nonexistent/hbase"])
        worker = provider.queue_command("launch-worker", {}, python_cmd("pass"))

        provider.start()

        assert provider.state == ServiceState.FAILED
        assert missing.exit_code is None
        assert worker.pid is None
        assert provider.get_exit_code() == 2


class TestIncrementalQueueing:
    """Test steps queued after the bootstrap has begun."""

    def test_step_queued_while_idle_starts_at_once(self, python_cmd, fast_config):
        provider = ProviderService("hbase", stop_when_exhausted=False)
        provider.init(fast_config)
        provider.start()
        assert provider.state == ServiceState.STARTED

        master = provider.queue_command("launch-master", {}, python_cmd("import time; time.sleep(30)"))
        try:
            assert master.state == ServiceState.STARTED
            assert master.pid is not None
        finally:
            provider.stop()

        assert master.state == ServiceState.STOPPED
        assert provider.state == ServiceState.STOPPED

    def test_step_queued_before_start_waits(self, python_cmd):
        provider = ProviderService("hbase")
        provider.init()
        master = provider.queue_command("launch-master", {}, python_cmd("pass"))
        assert master.state == ServiceState.INITIALIZED
        assert master.pid is None

        provider.start()
        assert provider.wait_for_terminal(timeout=TIMEOUT)
        assert master.exit_code == 0

    def test_step_queued_while_busy_waits_for_predecessor(self, python_cmd, wait_until):
        provider = ProviderService("hbase", stop_when_exhausted=False)
        provider.init()
        provider.start()
        first = provider.queue_command("first", {}, python_cmd("import time; time.sleep(0.5)"))
        second = provider.queue_command("second", {}, python_cmd("pass"))

        assert first.state == ServiceState.STARTED
        assert second.pid is None
        assert wait_until(lambda: second.exit_code == 0, timeout=TIMEOUT)
        assert first.exit_code == 0
        provider.stop()


class TestCancellation:
    """Test stopping a running bootstrap."""

    def test_stop_terminates_active_process(self, python_cmd, fast_config, wait_until):
        provider = ProviderService("hbase")
        provider.init(fast_config)
        master = provider.queue_command("launch-master", {}, python_cmd("import time; time.sleep(60)"))
        worker = provider.queue_command("launch-worker", {}, python_cmd("pass"))
        provider.start()
        assert master.is_running

        provider.stop()

        assert provider.state == ServiceState.STOPPED
        assert master.state == ServiceState.STOPPED
        assert worker.state == ServiceState.STOPPED
        assert worker.pid is None
        assert wait_until(lambda: not master.is_running, timeout=5)

    def test_group_with_process_reports_its_exit(self, python_cmd, manual_step):
        provider = ProviderService("hbase")
        provider.init()
        master = provider.build_process("launch-master", {}, _exit_with(python_cmd, 42))
        provider.add_service(CompositeService("launch", [manual_step("register"), master]))

        provider.start()
        assert provider.wait_for_terminal(timeout=TIMEOUT)
        assert provider.state == ServiceState.FAILED
        assert provider.get_exit_code() == 42
