"""Bug status state machine.

Statuses only move forward: open -> in-progress -> closed, with open -> closed
as a shortcut. Closed is terminal. The client uses this to decide which
advance action to offer; the persistence service uses it to reject illegal
status changes.
"""

from typing import Optional

from .errors import InvalidTransition

OPEN = "open"
IN_PROGRESS = "in-progress"
CLOSED = "closed"

STATUSES = (OPEN, IN_PROGRESS, CLOSED)
DEFAULT_STATUS = OPEN

TRANSITIONS: dict[str, frozenset[str]] = {
    OPEN: frozenset({IN_PROGRESS, CLOSED}),
    IN_PROGRESS: frozenset({CLOSED}),
    CLOSED: frozenset(),
}

# The single step offered by the "advance" action
_ADVANCE = {
    OPEN: IN_PROGRESS,
    IN_PROGRESS: CLOSED,
}

_ADVANCE_LABELS = {
    OPEN: "Start Progress",
    IN_PROGRESS: "Close Bug",
}


def is_valid_status(status: str) -> bool:
    return status in TRANSITIONS


def next_status(current: str) -> Optional[str]:
    """Return the status the advance action moves to, or None for closed bugs."""
    if not is_valid_status(current):
        raise ValueError(f"Unknown status: {current!r}")
    return _ADVANCE.get(current)


def can_transition(current: str, target: str) -> bool:
    """Whether ``target`` is an accepted status for a bug currently at ``current``.

    Keeping the current status is not a transition and is always accepted.
    """
    if not is_valid_status(current) or not is_valid_status(target):
        return False
    return target == current or target in TRANSITIONS[current]


def check_transition(current: str, target: str) -> None:
    """Raise InvalidTransition unless ``current -> target`` is allowed."""
    if not can_transition(current, target):
        raise InvalidTransition(current, target)


def advance_label(current: str) -> Optional[str]:
    """Label for the advance button, None when no advance is offered."""
    return _ADVANCE_LABELS.get(current)
