"""Shared fixtures: an in-memory Mongo collection and an in-memory gateway."""

import asyncio
import sys
import os
from datetime import datetime, timezone
from types import SimpleNamespace

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from bson import ObjectId

from bugsync.api import bugs as bugs_module
from bugsync.core.errors import BugSyncError, NotFoundError
from bugsync.models import Bug


# ---------------------------------------------------------------------------
# Fake MongoDB
# ---------------------------------------------------------------------------

def _matches(doc: dict, query: dict) -> bool:
    return all(doc.get(key) == value for key, value in query.items())


class FakeCursor:
    def __init__(self, docs: list[dict]):
        self._docs = docs

    def sort(self, key, direction=1):
        self._docs = sorted(self._docs, key=lambda d: d[key], reverse=direction < 0)
        return self

    async def to_list(self, length=None):
        docs = [dict(d) for d in self._docs]
        return docs if length is None else docs[:length]


class FakeCollection:
    """The subset of motor's collection API the bug service uses."""

    def __init__(self):
        self.docs: list[dict] = []

    async def insert_one(self, doc: dict):
        doc = dict(doc)
        doc.setdefault("_id", ObjectId())
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    def find(self, query: dict | None = None):
        return FakeCursor([d for d in self.docs if _matches(d, query or {})])

    async def find_one(self, query: dict):
        for doc in self.docs:
            if _matches(doc, query):
                return dict(doc)
        return None

    async def find_one_and_update(self, query: dict, update: dict, return_document=None):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(update.get("$set", {}))
                return dict(doc)
        return None

    async def find_one_and_delete(self, query: dict):
        for index, doc in enumerate(self.docs):
            if _matches(doc, query):
                return self.docs.pop(index)
        return None


@pytest.fixture
def fake_db(monkeypatch):
    """Replace the service's database with an in-memory one."""
    db = SimpleNamespace(bugs=FakeCollection())

    async def fake_get_db():
        return db

    monkeypatch.setattr(bugs_module, "get_db", fake_get_db)
    return db


# ---------------------------------------------------------------------------
# Fake gateway
# ---------------------------------------------------------------------------

class FakeGateway:
    """In-memory stand-in for BugGateway.

    ``gates`` holds an asyncio.Event per operation name; a call waits on it
    before resolving. ``failures`` makes the next call of an operation raise.
    """

    def __init__(self):
        self.records: dict[str, Bug] = {}
        self.calls: list[tuple] = []
        self.failures: dict[str, BugSyncError] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self._next_id = 1

    def seed(self, title: str, description: str, status: str = "open") -> Bug:
        bug = self._new_bug(title, description, status)
        self.records[bug.id] = bug
        return bug

    def _new_bug(self, title, description, status) -> Bug:
        now = datetime.now(timezone.utc)
        bug = Bug(
            id=f"bug-{self._next_id}",
            title=title.strip(),
            description=description,
            status=status or "open",
            created_at=now,
            updated_at=now,
        )
        self._next_id += 1
        return bug

    async def _enter(self, name: str, *args):
        self.calls.append((name, *args))
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        if name in self.failures:
            raise self.failures.pop(name)

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]

    async def list(self):
        await self._enter("list")
        return list(self.records.values())

    async def create(self, draft):
        await self._enter("create", draft.to_payload())
        bug = self._new_bug(draft.title, draft.description, draft.status)
        self.records[bug.id] = bug
        return bug

    async def update(self, bug_id, changes):
        current = self.records.get(bug_id)
        await self._enter("update", bug_id, changes.changes())
        if current is None:
            raise NotFoundError(bug_id)
        updated = current.model_copy(update={**changes.changes(), "updated_at": datetime.now(timezone.utc)})
        if bug_id in self.records:
            self.records[bug_id] = updated
        return updated

    async def delete(self, bug_id):
        await self._enter("delete", bug_id)
        if self.records.pop(bug_id, None) is None:
            raise NotFoundError(bug_id)


@pytest.fixture
def gateway():
    return FakeGateway()
