"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


class ConfigValidator:
    """Validates engine configuration parameters."""

    @staticmethod
    def validate_process_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate forked process parameters."""
        errors = []

        if "kill_grace_seconds" in params:
            value = params["kill_grace_seconds"]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                errors.append(ValidationError(
                    field="process.kill_grace_seconds",
                    message="Must be a non-negative number",
                    value=value
                ))

        if "output_buffer_lines" in params:
            value = params["output_buffer_lines"]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                errors.append(ValidationError(
                    field="process.output_buffer_lines",
                    message="Must be a non-negative integer",
                    value=value
                ))

        for flag in ("inherit_environment", "log_output"):
            if flag in params and not isinstance(params[flag], bool):
                errors.append(ValidationError(
                    field=f"process.{flag}",
                    message="Must be a boolean",
                    value=params[flag]
                ))

        return errors

    @staticmethod
    def validate_sequence_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate sequence runner parameters."""
        errors = []

        if "stop_when_exhausted" in params:
            value = params["stop_when_exhausted"]
            if not isinstance(value, bool):
                errors.append(ValidationError(
                    field="sequence.stop_when_exhausted",
                    message="Must be a boolean",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in VALID_LOG_LEVELS:
                errors.append(ValidationError(
                    field="logging.level",
                    message=f"Must be one of {', '.join(VALID_LOG_LEVELS)}",
                    value=value
                ))

        return errors

    @classmethod
    def validate(cls, config: dict[str, Any]) -> list[ValidationError]:
        """Validate a complete merged configuration."""
        if not isinstance(config, dict):
            return [ValidationError(field="", message="Configuration must be a mapping", value=config)]

        errors = []
        sections = {
            "process": cls.validate_process_params,
            "sequence": cls.validate_sequence_params,
            "logging": cls.validate_logging_params,
        }
        for section, validator in sections.items():
            params = config.get(section)
            if params is None:
                continue
            if not isinstance(params, dict):
                errors.append(ValidationError(
                    field=section,
                    message="Must be a mapping",
                    value=params
                ))
                continue
            errors.extend(validator(params))

        return errors
