"""Bug endpoints: list, create, update and delete tracked bugs."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument

from ..core.errors import FieldError, InvalidTransition
from ..core.status import DEFAULT_STATUS, check_transition
from ..core.validation import validate
from ..db import get_db
from ..models import Bug, BugDraft, BugUpdate
from .errors import BugRequestError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/bugs", tags=["bugs"])

NOT_FOUND_MESSAGE = "Bug not found"


def _object_id(bug_id: str) -> ObjectId:
    """Parse a bug id; malformed ids are treated as unknown bugs."""
    try:
        return ObjectId(bug_id)
    except (InvalidId, TypeError):
        raise BugRequestError(404, NOT_FOUND_MESSAGE)


def _validation_failed(field_errors: dict[str, FieldError]) -> BugRequestError:
    details = ", ".join(f"{name}: {err.message}" for name, err in field_errors.items())
    return BugRequestError(400, f"Bug validation failed: {details}", field_errors)


@router.get("")
async def list_bugs():
    """List all bugs in the order they were created."""
    db = await get_db()
    cursor = db.bugs.find().sort("_id", 1)
    docs = await cursor.to_list(length=None)
    return [Bug.from_doc(doc).to_public() for doc in docs]


@router.post("", status_code=201)
async def create_bug(request: BugDraft):
    """
    Create a bug.

    The title is stored stripped of surrounding whitespace and the status
    defaults to open. Returns the canonical record with its id and timestamps.
    """
    result = validate(request)
    if not result.valid:
        raise _validation_failed(result.field_errors)

    now = datetime.now(timezone.utc)
    bug = Bug(
        title=request.title.strip(),
        description=request.description,
        status=request.status or DEFAULT_STATUS,
        created_at=now,
        updated_at=now,
    )

    db = await get_db()
    inserted = await db.bugs.insert_one(bug.to_doc())
    bug.id = str(inserted.inserted_id)

    logger.info(f"Bug {bug.id} created with status {bug.status}")
    return bug.to_public()


@router.put("/{bug_id}")
async def update_bug(bug_id: str, request: BugUpdate):
    """
    Update the fields present in the request body.

    Status changes must follow the forward-only transition table; anything
    else is rejected with INVALID_TRANSITION. The write is conditional on the
    status the transition was checked against.
    """
    object_id = _object_id(bug_id)
    db = await get_db()

    doc = await db.bugs.find_one({"_id": object_id})
    if not doc:
        raise BugRequestError(404, NOT_FOUND_MESSAGE)
    current = Bug.from_doc(doc)

    # Required fields cannot be cleared; null means "leave as is"
    changes = {name: value for name, value in request.changes().items() if value is not None}

    result = validate(changes, partial=True)
    if not result.valid:
        raise _validation_failed(result.field_errors)

    if "title" in changes:
        changes["title"] = changes["title"].strip()

    if "status" in changes:
        try:
            check_transition(current.status, changes["status"])
        except InvalidTransition as e:
            raise _validation_failed({"status": e.to_field_error()})

    changes["updatedAt"] = datetime.now(timezone.utc)
    updated = await db.bugs.find_one_and_update(
        {"_id": object_id, "status": current.status},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        if await db.bugs.find_one({"_id": object_id}) is None:
            raise BugRequestError(404, NOT_FOUND_MESSAGE)
        raise BugRequestError(409, "Bug was modified by another request")

    logger.info(f"Bug {bug_id} updated: {sorted(k for k in changes if k != 'updatedAt')}")
    return Bug.from_doc(updated).to_public()


@router.delete("/{bug_id}")
async def delete_bug(bug_id: str):
    """Delete a bug."""
    object_id = _object_id(bug_id)
    db = await get_db()

    deleted = await db.bugs.find_one_and_delete({"_id": object_id})
    if deleted is None:
        raise BugRequestError(404, NOT_FOUND_MESSAGE)

    logger.info(f"Bug {bug_id} deleted")
    return {"message": "Bug deleted successfully"}
