"""Error taxonomy shared by the gateway, the store and the persistence service.

Every failure the client can observe is one of these types. Each carries a
``user_message`` suitable for showing directly in the UI.
"""

from typing import Optional

from pydantic import BaseModel

# Field error codes
REQUIRED = "REQUIRED"
TOO_SHORT = "TOO_SHORT"
INVALID_ENUM = "INVALID_ENUM"
INVALID_TRANSITION = "INVALID_TRANSITION"


class FieldError(BaseModel):
    """A single rejected field."""
    code: str
    message: str


class BugSyncError(Exception):
    """Base class for all bug synchronization failures."""

    user_message = "An unexpected error occurred. Please try again."

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        super().__init__(detail or self.user_message)


class ValidationError(BugSyncError):
    """A payload was rejected, either locally before sending or by the server."""

    def __init__(
        self,
        field_errors: dict[str, FieldError] | None = None,
        message: Optional[str] = None,
        local: bool = False,
    ):
        self.field_errors = field_errors or {}
        self.local = local
        super().__init__(message or self._summarize())

    def _summarize(self) -> str:
        if not self.field_errors:
            return "Validation failed"
        return "; ".join(f"{name}: {err.message}" for name, err in self.field_errors.items())

    @property
    def user_message(self) -> str:
        return str(self)

    def codes(self) -> dict[str, str]:
        """Map of field name to error code."""
        return {name: err.code for name, err in self.field_errors.items()}


class NotFoundError(BugSyncError):
    """The target bug does not exist."""

    user_message = "Bug not found. It may have been deleted."

    def __init__(self, bug_id: str):
        self.bug_id = bug_id
        super().__init__(f"Bug {bug_id} not found")


class NetworkError(BugSyncError):
    """No response reached us from the persistence service."""

    user_message = "Network error. Please check your connection and try again."


class UnexpectedError(BugSyncError):
    """Any other failure, including malformed responses."""

    user_message = "An unexpected error occurred. Please try again."


class ConcurrentModification(BugSyncError):
    """A mutation was issued against a bug that already has one in flight."""

    user_message = "This bug is already being updated. Please wait and try again."

    def __init__(self, bug_id: str):
        self.bug_id = bug_id
        super().__init__(f"Bug {bug_id} already has a mutation in flight")


class InvalidTransition(BugSyncError):
    """A status change not reachable from the current status."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"status transition from '{current}' to '{target}' is not allowed")

    @property
    def user_message(self) -> str:
        return str(self)

    def to_field_error(self) -> FieldError:
        return FieldError(code=INVALID_TRANSITION, message=str(self))
