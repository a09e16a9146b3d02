"""
Provider services.

A provider bootstraps its application as a sequence of steps, typically
forked processes queued one after another (write config, launch master,
launch worker). It owns a ``SequenceService``, propagates step failures
upstream, and resolves a single exit code for the whole sequence.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence

import structlog
import yaml

from .errors import BadCommandArgumentsError
from .service.exit_codes import latest_process, resolve_exit_code
from .service.lifecycle import Service, StateListener
from .service.models import ServiceState
from .service.process import ForkedProcessService
from .service.sequence import SequenceService

logger = structlog.get_logger(__name__)

INFO_NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class ProviderRole:
    """A role the provider knows how to launch."""
    name: str


class ClusterDescription(Protocol):
    """Read access to the cluster descriptor."""

    def get_info(self, key: str) -> Optional[str]: ...


class ProviderService:
    """Base class for provider services built on a command sequence."""

    def __init__(
        self,
        name: str,
        roles: Iterable[ProviderRole] = (),
        stop_when_exhausted: Optional[bool] = None
    ) -> None:
        self.name = name
        self.roles = list(roles)
        self.sequence = SequenceService(name, stop_when_exhausted=stop_when_exhausted)
        self.logger = logger.bind(provider=name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, state={self.state.value})"

    # Lifecycle, delegated to the owned sequence

    @property
    def state(self) -> ServiceState:
        return self.sequence.state

    @property
    def config(self) -> dict[str, Any]:
        return self.sequence.config

    @property
    def failure_cause(self) -> Optional[BaseException]:
        return self.sequence.failure_cause

    def is_in_state(self, state: ServiceState) -> bool:
        return self.sequence.is_in_state(state)

    def init(self, config: Optional[dict[str, Any]] = None) -> None:
        self.sequence.init(config)

    def start(self) -> None:
        self.sequence.start()

    def stop(self) -> None:
        self.sequence.stop()

    def wait_for_terminal(self, timeout: Optional[float] = None) -> bool:
        return self.sequence.wait_for_terminal(timeout)

    def register_listener(self, listener: StateListener) -> None:
        self.sequence.register_listener(listener)

    # Command sequencing

    def add_service(self, service: Service) -> None:
        """Queue a non-process step, such as writing configuration."""
        self.sequence.add(service)
        self.maybe_start_command_sequence()

    def build_process(
        self,
        name: str,
        env: Optional[Mapping[str, str]],
        commands: Sequence[str]
    ) -> ForkedProcessService:
        """
        Create and initialise a forked process step.

        Raises:
            BadCommandArgumentsError: If the command is malformed
        """
        process = ForkedProcessService(name)
        process.init(self.config)
        process.build(env, commands)
        return process

    def queue_command(
        self,
        name: str,
        env: Optional[Mapping[str, str]],
        commands: Sequence[str]
    ) -> ForkedProcessService:
        """
        Build a forked process step and add it to the sequence.

        The step's lifecycle is bound to the sequence: stopping the provider
        stops the process. If the sequence is already running and idle the
        step starts immediately.
        """
        process = self.build_process(name, env, commands)
        self.sequence.add(process)
        self.logger.info("Queued command", process=name, command=" ".join(process.command))
        self.maybe_start_command_sequence()
        return process

    def maybe_start_command_sequence(self) -> None:
        """If the sequence is already running, start the next queued step."""
        if self.sequence.is_in_state(ServiceState.STARTED):
            self.sequence.maybe_advance_if_running()

    def get_exit_code(self) -> int:
        return resolve_exit_code(self.sequence)

    def latest_process(self) -> Optional[ForkedProcessService]:
        """The forked process that ran most recently, or None."""
        return latest_process(self.sequence)

    # Collaborator hooks

    @staticmethod
    def cmd(*args: Any) -> str:
        """Build a space separated command string from the arguments' string values."""
        return " ".join(str(arg) for arg in args)

    def is_supported_role(self, role: str) -> bool:
        """Check whether a role is known, and therefore can be launched."""
        return any(provided.name == role for provided in self.roles)

    def load_provider_configuration(self, conf_dir: Path, filename: str) -> dict[str, Any]:
        """
        Load a provider-specific YAML configuration file.

        Raises:
            BadCommandArgumentsError: If the file is not in the directory
        """
        conf_dir = Path(conf_dir)
        site_file = conf_dir / filename
        if not site_file.exists():
            raise BadCommandArgumentsError(
                f"Configuration directory {conf_dir} doesn't contain {filename} "
                f"- listing is {list_dir(conf_dir)}"
            )

        with open(site_file) as f:
            site_conf = yaml.safe_load(f) or {}

        self.logger.info("Loaded provider configuration", path=str(site_file), keys=sorted(site_conf))
        return site_conf

    def validate_application_configuration(
        self,
        cluster: ClusterDescription,
        conf_dir: Path,
        secure: bool
    ) -> None:
        pass

    def init_monitoring(self) -> bool:
        return False

    def build_provider_status(self) -> dict[str, str]:
        return {}

    def build_monitor_details(self, cluster: ClusterDescription) -> dict[str, str]:
        return {}

    @staticmethod
    def get_info_avoiding_null(cluster: ClusterDescription, key: str) -> str:
        value = cluster.get_info(key)
        return INFO_NOT_AVAILABLE if value is None else value


def list_dir(directory: Path) -> list[str]:
    """Sorted file names in a directory; empty if it does not exist."""
    if not directory.is_dir():
        return []
    return sorted(entry.name for entry in directory.iterdir())
