"""Bug model and the request shapes used to create and edit bugs."""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from bson import ObjectId

BugStatus = Literal["open", "in-progress", "closed"]


class Bug(BaseModel):
    """A tracked bug report.

    ``id``, ``created_at`` and ``updated_at`` are assigned by the persistence
    service. A Bug without an id is a draft that was never submitted.
    """

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    id: Optional[str] = Field(default=None, alias="_id")
    title: str
    description: str
    status: BugStatus = "open"
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    def to_doc(self) -> dict:
        """Convert to MongoDB document."""
        doc = self.model_dump(by_alias=True, exclude_none=True)
        if doc.get("_id"):
            doc["_id"] = ObjectId(doc["_id"])
        else:
            doc.pop("_id", None)
        return doc

    @classmethod
    def from_doc(cls, doc: dict) -> "Bug":
        """Create from MongoDB document."""
        doc = dict(doc)
        if doc.get("_id"):
            doc["_id"] = str(doc["_id"])
        return cls(**doc)

    def to_public(self) -> dict:
        """Return the wire representation of the bug."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class BugDraft(BaseModel):
    """Payload for submitting a new bug.

    ``status`` is kept as a plain string so an out-of-range value reaches the
    validation rules and is reported as a field error.
    """

    title: str = ""
    description: str = ""
    status: Optional[str] = None

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)


class BugUpdate(BaseModel):
    """Partial edit of an existing bug.

    Only fields that were explicitly set are sent, so an omitted field is never
    confused with one that was cleared.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None

    def changes(self) -> dict:
        """Fields explicitly provided by the caller."""
        return self.model_dump(exclude_unset=True)

    def is_empty(self) -> bool:
        return not self.model_fields_set
