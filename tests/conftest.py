"""Pytest configuration and shared fixtures."""

import sys
import time
from typing import Callable, List

import pytest

from bootseq.service.lifecycle import Service
from bootseq.service.models import ServiceState


class ManualService(Service):
    """Step that stays STARTED until the test completes or fails it."""

    def __init__(self, name: str):
        super().__init__(name)
        self.start_count = 0
        self.stop_count = 0

    def service_start(self) -> None:
        self.start_count += 1

    def service_stop(self) -> None:
        self.stop_count += 1

    def complete(self) -> None:
        self.lifecycle.complete(ServiceState.STOPPED, "manual_complete")


def _wait_until(predicate: Callable[[], bool], timeout: float = 10.0,
                interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def manual_step() -> Callable[[str], ManualService]:
    """Factory for manually completed steps."""
    return ManualService


@pytest.fixture
def python_cmd() -> Callable[[str], List[str]]:
    """Build a command line running a Python snippet in a child interpreter."""
    def build(code: str) -> List[str]:
        return [sys.executable, "-c", code]
    return build


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Poll a predicate until it holds or the timeout expires."""
    return _wait_until


@pytest.fixture
def fast_config() -> dict:
    """Engine config with a short kill grace period."""
    return {"process": {"kill_grace_seconds": 1.0}}
