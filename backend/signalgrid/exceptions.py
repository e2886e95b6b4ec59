"""
Engine error taxonomy

Every error raised across the engine boundary derives from SignalGridError.
All of them are recoverable: the caller corrects the input and retries.
"""

from typing import Any, Optional


class SignalGridError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, entity_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.entity_id = entity_id


class ValidationError(SignalGridError, ValueError):
    """Raised when input is malformed, out of range or an unknown enum member."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value


class NotFoundError(SignalGridError, LookupError):
    """Raised when a referenced intersection or emergency id does not exist."""


class DuplicateError(SignalGridError):
    """Raised when registering or initializing an id that is already present."""


class InvalidStateError(SignalGridError):
    """Raised when a signal state or coordination mode is not recognized."""

    def __init__(self, message: str, value: Any = None):
        super().__init__(message)
        self.value = value


class ConflictError(SignalGridError):
    """Raised when multi-emergency coordination has no resolvable ordering."""

    def __init__(self, message: str, vehicle_ids: Optional[list] = None):
        super().__init__(message)
        self.vehicle_ids = list(vehicle_ids or [])
