"""Result values returned by store operations.

Callers pattern-match on ``Ok`` / ``Err`` instead of catching exceptions:

    match await store.create(draft):
        case Ok(value=bug):
            ...
        case Err(error=ValidationError() as err):
            show_field_errors(err.field_errors)
        case Err(error=err):
            show_banner(err.user_message)

``unwrap()`` re-raises the error for callers that prefer exceptions.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from ..core.errors import BugSyncError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: BugSyncError

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err]
