"""Client-side bug collection store.

BugStore owns the session's view of the bug collection: an ordered, id-keyed
mapping kept in sync with the persistence service through BugGateway.

- Reads (``bugs``, ``get``, ``loading``, ``error``) never observe a partially
  applied mutation; each change is applied in a single step after the server
  answers.
- Only one update/delete may be in flight per bug id. A second one issued
  before the first resolves is rejected with ConcurrentModification. Distinct
  ids are independent.
- Operations return ``Ok`` / ``Err`` instead of raising. ``error`` holds the
  user-facing message of the most recent failure only.

One store is created per session and passed to whatever renders it;
``reset()`` drops all state on logout or reload.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping

from ..core.errors import (
    BugSyncError,
    ConcurrentModification,
    FieldError,
    NotFoundError,
    UnexpectedError,
    ValidationError,
    INVALID_TRANSITION,
)
from ..core.status import next_status
from ..core.validation import validate
from ..models import Bug, BugDraft, BugUpdate
from .events import StoreEvents, BUGS_LOADED, BUG_CREATED, BUG_UPDATED, BUG_DELETED, STORE_ERROR
from .gateway import BugGateway
from .result import Ok, Err, Result

logger = logging.getLogger(__name__)


class BugStore:
    """Session-owned collection of bugs synchronized with the persistence service."""

    def __init__(self, gateway: BugGateway, events: StoreEvents | None = None):
        self._gateway = gateway
        self.events = events or StoreEvents()
        self._bugs: dict[str, Bug] = {}
        self._in_flight: set[str] = set()
        self._pending = 0
        # Bumped by reset(); operations started under an older generation
        # resolve without touching the store.
        self._generation = 0
        self.error: str | None = None
        self.failure: BugSyncError | None = None

    # ------------------------------------------------------------------
    # Read surface
    # ------------------------------------------------------------------

    @property
    def bugs(self) -> list[Bug]:
        """Persisted bugs in collection order."""
        return list(self._bugs.values())

    def get(self, bug_id: str) -> Bug | None:
        return self._bugs.get(bug_id)

    def __len__(self) -> int:
        return len(self._bugs)

    def __contains__(self, bug_id: object) -> bool:
        return bug_id in self._bugs

    @property
    def loading(self) -> bool:
        """True while any operation is waiting on the network."""
        return self._pending > 0

    def is_in_flight(self, bug_id: str) -> bool:
        return bug_id in self._in_flight

    def reset(self) -> None:
        """Drop all session state. Pending operations are discarded when they resolve."""
        self._generation += 1
        self._bugs = {}
        self._in_flight = set()
        self._pending = 0
        self.error = None
        self.failure = None
        logger.info("Bug store reset")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _busy(self) -> AsyncIterator[int]:
        """Mark an operation as pending for its duration; yields its generation."""
        generation = self._generation
        self._pending += 1
        self.error = None
        self.failure = None
        try:
            yield generation
        finally:
            if generation == self._generation:
                self._pending -= 1

    @asynccontextmanager
    async def _mutating(self, bug_id: str) -> AsyncIterator[int]:
        generation = self._generation
        self._in_flight.add(bug_id)
        try:
            async with self._busy() as busy_generation:
                yield busy_generation
        finally:
            if generation == self._generation:
                self._in_flight.discard(bug_id)

    async def _fail(self, error: BugSyncError, action: str) -> Err:
        """Record a failure in the error slot and notify subscribers."""
        if isinstance(error, UnexpectedError):
            self.error = f"Failed to {action}. Please try again."
        else:
            self.error = error.user_message
        self.failure = error
        logger.warning(f"Failed to {action}: {error!r}")
        await self.events.publish({"type": STORE_ERROR, "message": self.error, "error": error})
        return Err(error)

    def _preflight(self, bug_id: str) -> BugSyncError | None:
        if bug_id in self._in_flight:
            logger.info(f"Rejecting mutation of bug {bug_id}: another one is in flight")
            return ConcurrentModification(bug_id)
        if bug_id not in self._bugs:
            return NotFoundError(bug_id)
        return None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def fetch_all(self) -> Result[list[Bug]]:
        """Replace the collection with the server's list."""
        async with self._busy() as generation:
            try:
                bugs = await self._gateway.list()
            except BugSyncError as e:
                if generation != self._generation:
                    return Err(e)
                return await self._fail(e, "load bugs")

            if generation != self._generation:
                logger.debug("Discarding bug list fetched before reset")
                return Ok(bugs)

            self._bugs = {bug.id: bug for bug in bugs}
            logger.info(f"Loaded {len(self._bugs)} bugs")
            await self.events.publish({"type": BUGS_LOADED, "bugs": self.bugs})
            return Ok(self.bugs)

    async def create(self, draft: BugDraft | Mapping[str, Any]) -> Result[Bug]:
        """Validate and submit a new bug, appending the canonical record on success.

        Invalid drafts are rejected locally with field errors and never sent.
        """
        result = validate(draft)
        if not result.valid:
            logger.debug(f"Draft rejected locally: {sorted(result.field_errors)}")
            return Err(result.to_error(local=True))

        if not isinstance(draft, BugDraft):
            draft = BugDraft.model_validate(dict(draft))

        async with self._busy() as generation:
            try:
                bug = await self._gateway.create(draft)
            except BugSyncError as e:
                if generation != self._generation:
                    return Err(e)
                return await self._fail(e, "create bug")

            if generation != self._generation:
                logger.debug(f"Discarding bug {bug.id} created before reset")
                return Ok(bug)

            self._bugs[bug.id] = bug
            await self.events.publish({"type": BUG_CREATED, "bug": bug})
            return Ok(bug)

    async def update(self, bug_id: str, changes: BugUpdate | Mapping[str, Any]) -> Result[Bug]:
        """Send changed fields for a bug and replace it in place with the server's copy."""
        error = self._preflight(bug_id)
        if error is not None:
            return await self._fail(error, "update bug")

        result = validate(changes, partial=True)
        if not result.valid:
            return Err(result.to_error(local=True))

        if not isinstance(changes, BugUpdate):
            changes = BugUpdate(**{k: v for k, v in changes.items() if k in BugUpdate.model_fields})
        if changes.is_empty():
            return Ok(self._bugs[bug_id])

        async with self._mutating(bug_id) as generation:
            try:
                bug = await self._gateway.update(bug_id, changes)
            except BugSyncError as e:
                if generation != self._generation:
                    return Err(e)
                return await self._fail(e, "update bug")

            # The entry may have been dropped by a refresh or reset meanwhile
            if generation != self._generation or bug_id not in self._bugs:
                logger.info(f"Discarding stale update for bug {bug_id}")
                return Ok(bug)

            self._bugs[bug_id] = bug
            await self.events.publish({"type": BUG_UPDATED, "bug": bug})
            return Ok(bug)

    async def advance(self, bug_id: str) -> Result[Bug]:
        """Move a bug one step forward: open -> in-progress -> closed."""
        error = self._preflight(bug_id)
        if error is not None:
            return await self._fail(error, "update bug")

        bug = self._bugs[bug_id]
        candidate = next_status(bug.status)
        if candidate is None:
            return Err(ValidationError(
                {"status": FieldError(code=INVALID_TRANSITION, message=f"A {bug.status} bug cannot be advanced")},
                local=True,
            ))
        return await self.update(bug_id, BugUpdate(status=candidate))

    async def delete(self, bug_id: str) -> Result[None]:
        """Delete a bug, removing it from the collection once the server confirms."""
        error = self._preflight(bug_id)
        if error is not None:
            return await self._fail(error, "delete bug")

        async with self._mutating(bug_id) as generation:
            try:
                await self._gateway.delete(bug_id)
            except BugSyncError as e:
                if generation != self._generation:
                    return Err(e)
                return await self._fail(e, "delete bug")

            if generation == self._generation and self._bugs.pop(bug_id, None) is not None:
                await self.events.publish({"type": BUG_DELETED, "bug_id": bug_id})
            return Ok(None)
