"""Default configuration parameters for the sequencing engine."""

from dataclasses import dataclass, fields
from typing import Any, Optional


@dataclass(frozen=True)
class ProcessParams:
    """Forked process supervision parameters."""
    kill_grace_seconds: float = 5.0                  # Wait after SIGTERM before SIGKILL
    output_buffer_lines: int = 100                   # Recent output lines kept per process
    inherit_environment: bool = True                 # Overlay step env on os.environ
    log_output: bool = True                          # Log stdout/stderr lines

    @classmethod
    def from_config(cls, config: Optional[dict[str, Any]]) -> "ProcessParams":
        """Build from the ``process`` section of a merged config dict."""
        return _section(cls, config, "process")


@dataclass(frozen=True)
class SequenceParams:
    """Sequence runner parameters."""
    stop_when_exhausted: bool = True                 # Stop once the last child finishes

    @classmethod
    def from_config(cls, config: Optional[dict[str, Any]]) -> "SequenceParams":
        """Build from the ``sequence`` section of a merged config dict."""
        return _section(cls, config, "sequence")


@dataclass(frozen=True)
class LoggingParams:
    """Logging output parameters."""
    level: str = "INFO"
    format_json: bool = False
    include_caller: bool = False


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    process: ProcessParams
    sequence: SequenceParams
    logging: LoggingParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        process=ProcessParams(),
        sequence=SequenceParams(),
        logging=LoggingParams(),
    )


def _section(cls, config: Optional[dict[str, Any]], key: str):
    section = (config or {}).get(key) or {}
    known = {f.name for f in fields(cls)}
    return cls(**{name: value for name, value in section.items() if name in known})
