"""
Lifecycle and sequencing error classifications.

These exceptions signal programming-contract violations and invalid
configuration. They are raised synchronously and never retried.
"""

from typing import Optional, Dict, Any


class ServiceError(Exception):
    """Base class for service lifecycle failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class ServiceStateError(ServiceError):
    """A lifecycle operation was attempted from a state that does not allow it."""

    def __init__(self, message: str, current_state: Optional[str] = None,
                 attempted_transition: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.current_state = current_state
        self.attempted_transition = attempted_transition


class SequencingError(ServiceError):
    """Work was queued on a container that can never run it."""

    def __init__(self, message: str, sequence_name: Optional[str] = None,
                 sequence_state: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.sequence_name = sequence_name
        self.sequence_state = sequence_state


class ConfigurationError(ServiceError):
    """Configuration rejected at init time."""

    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []
