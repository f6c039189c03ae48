"""Bug lifecycle rules: validation, status transitions and the error taxonomy."""

from .errors import (
    BugSyncError,
    ConcurrentModification,
    FieldError,
    InvalidTransition,
    NetworkError,
    NotFoundError,
    UnexpectedError,
    ValidationError,
)
from .status import STATUSES, next_status, can_transition, check_transition, advance_label
from .validation import validate, ValidationResult

__all__ = [
    "BugSyncError",
    "ConcurrentModification",
    "FieldError",
    "InvalidTransition",
    "NetworkError",
    "NotFoundError",
    "UnexpectedError",
    "ValidationError",
    "STATUSES",
    "next_status",
    "can_transition",
    "check_transition",
    "advance_label",
    "validate",
    "ValidationResult",
]
