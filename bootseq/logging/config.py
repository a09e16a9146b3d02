"""
Centralized logging configuration for the bootseq engine.

This module provides standardized logging configuration using structlog
for all components. Lifecycle transitions and forked process output are
logged through the helpers here so that every service reports in the same
structured shape.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger

from ..config.defaults import LoggingParams


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON format; otherwise human-readable
        include_timestamp: Include timestamp in log output
        include_caller: Include caller information (filename, line number)
        extra_processors: Additional structlog processors to include
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s"  # structlog will handle formatting
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                       structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_lifecycle_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for service lifecycle transitions.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structlog logger bound to the lifecycle subsystem
    """
    return get_logger(name).bind(
        subsystem="service_lifecycle",
        audit_trail=True
    )


def get_process_logger(name: str, process_name: str) -> FilteringBoundLogger:
    """
    Get a logger for a single forked process.

    Args:
        name: Logger name (typically __name__)
        process_name: Logical name of the process step

    Returns:
        Structlog logger bound to the process subsystem and process name
    """
    return get_logger(name).bind(
        subsystem="process",
        process=process_name
    )


def log_state_transition(
    logger: FilteringBoundLogger,
    service_name: str,
    from_state: str,
    to_state: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a service state transition with standardized format.

    Args:
        logger: Structlog logger instance
        service_name: Name of the service transitioning
        from_state: Current state
        to_state: Target state
        trigger: What triggered the transition
        context: Additional context data
    """
    bound_logger = logger.bind(
        service=service_name,
        from_state=from_state,
        to_state=to_state,
        trigger=trigger,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if to_state == "failed":
        bound_logger.warning("Service state transition")
    else:
        bound_logger.info("Service state transition")


def configure_logging_from_config(config: Optional[dict[str, Any]] = None) -> None:
    """
    Configure logging from the ``logging`` section of a merged engine config.

    Args:
        config: Merged configuration dict, as returned by ConfigLoader.merge_config
    """
    section = (config or {}).get("logging") or {}
    params = LoggingParams(**{
        key: value for key, value in section.items()
        if key in LoggingParams.__dataclass_fields__
    })
    configure_logging(
        level=params.level,
        format_json=params.format_json,
        include_caller=params.include_caller,
    )
