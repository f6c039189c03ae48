"""Tests for the client-side bug collection store."""

import asyncio

import httpx

from bugsync.client.gateway import BugGateway
from bugsync.client.result import Ok, Err
from bugsync.client.store import BugStore
from bugsync.core.errors import (
    ConcurrentModification,
    NetworkError,
    NotFoundError,
    UnexpectedError,
    ValidationError,
)
from bugsync.models import BugUpdate

LOGIN = {"title": "Login fails", "description": "Cannot log in with valid credentials"}


def test_fetch_all_replaces_collection(gateway):
    """A refresh drops bugs the server no longer has."""
    first = gateway.seed("First bug", "Description 1")
    second = gateway.seed("Second bug", "Description 2")
    store = BugStore(gateway)

    async def run_test():
        result = await store.fetch_all()
        assert isinstance(result, Ok)
        assert [b.id for b in store.bugs] == [first.id, second.id]

        del gateway.records[first.id]
        await store.fetch_all()
        assert [b.id for b in store.bugs] == [second.id]

    asyncio.run(run_test())


def test_fetch_all_failure_keeps_collection(gateway):
    gateway.seed("First bug", "Description 1")
    store = BugStore(gateway)

    async def run_test():
        await store.fetch_all()
        gateway.failures["list"] = NetworkError("refused")

        result = await store.fetch_all()
        assert isinstance(result, Err)
        assert isinstance(result.error, NetworkError)
        assert len(store) == 1
        assert store.error
        assert not store.loading

    asyncio.run(run_test())


def test_fetch_all_undecodable_response_is_reported():
    """A raw httpx decoding failure still lands in the error slot as a result."""
    def handler(request):
        return httpx.Response(200, headers={"content-encoding": "gzip"}, content=b"not gzip at all")

    async def run_test():
        async with BugGateway(base_url="http://bugs.test/api", transport=httpx.MockTransport(handler)) as gateway:
            store = BugStore(gateway)
            return store, await store.fetch_all()

    store, result = asyncio.run(run_test())
    assert isinstance(result, Err)
    assert isinstance(result.error, UnexpectedError)
    assert store.error
    assert not store.loading


def test_loading_while_fetch_pending(gateway):
    """loading is true while fetch_all waits and false after, on success or failure."""
    store = BugStore(gateway)

    async def run_test():
        for failure in (None, NetworkError("refused")):
            gate = asyncio.Event()
            gateway.gates["list"] = gate
            if failure:
                gateway.failures["list"] = failure

            task = asyncio.create_task(store.fetch_all())
            await asyncio.sleep(0)
            assert store.loading

            gate.set()
            await task
            assert not store.loading

    asyncio.run(run_test())


def test_create_rejects_invalid_draft_locally(gateway):
    """Short fields are rejected before the gateway is ever called."""
    store = BugStore(gateway)

    result = asyncio.run(store.create({"title": "ab", "description": "short"}))

    assert isinstance(result, Err)
    assert isinstance(result.error, ValidationError)
    assert result.error.local
    assert result.error.codes() == {"title": "TOO_SHORT", "description": "TOO_SHORT"}
    assert gateway.calls == []
    assert store.error is None
    assert not store.loading


def test_create_appends_canonical_records(gateway):
    """Created bugs are appended in order and never share an id."""
    store = BugStore(gateway)

    async def run_test():
        for index in range(3):
            result = await store.create({"title": f"Bug number {index}", "description": "Something is broken"})
            assert isinstance(result, Ok)
        return store.bugs

    bugs = asyncio.run(run_test())
    assert [b.title for b in bugs] == ["Bug number 0", "Bug number 1", "Bug number 2"]
    assert len({b.id for b in bugs}) == 3
    assert all(b.is_persisted and b.status == "open" for b in bugs)


def test_create_failure_sets_error_and_can_be_reraised(gateway):
    store = BugStore(gateway)
    gateway.failures["create"] = NetworkError("refused")

    result = asyncio.run(store.create(LOGIN))

    assert isinstance(result, Err)
    assert store.bugs == []
    assert store.error == NetworkError.user_message
    try:
        result.unwrap()
    except NetworkError:
        pass
    else:
        raise AssertionError("unwrap should re-raise the failure")


def test_unexpected_failures_get_operation_message(gateway):
    store = BugStore(gateway)
    gateway.failures["create"] = UnexpectedError("HTTP 500")

    asyncio.run(store.create(LOGIN))
    assert store.error == "Failed to create bug. Please try again."


def test_success_clears_previous_error(gateway):
    store = BugStore(gateway)

    async def run_test():
        gateway.failures["list"] = NetworkError("refused")
        await store.fetch_all()
        assert store.error is not None

        await store.create(LOGIN)
        assert store.error is None

    asyncio.run(run_test())


def test_update_replaces_in_place(gateway):
    """An updated bug keeps its position in the collection."""
    bugs = [gateway.seed(f"Bug {i}", "Description of the bug") for i in range(3)]
    store = BugStore(gateway)

    async def run_test():
        await store.fetch_all()
        result = await store.update(bugs[1].id, {"title": "Renamed bug"})
        assert isinstance(result, Ok)

    asyncio.run(run_test())
    assert [b.title for b in store.bugs] == ["Bug 0", "Renamed bug", "Bug 2"]
    assert gateway.calls[-1] == ("update", bugs[1].id, {"title": "Renamed bug"})


def test_update_unknown_id_fails_without_network_call(gateway):
    store = BugStore(gateway)

    result = asyncio.run(store.update("missing", BugUpdate(status="closed")))

    assert isinstance(result.error, NotFoundError)
    assert gateway.calls == []


def test_update_failure_keeps_prior_values(gateway):
    """A network failure leaves the entry untouched and sets the error slot."""
    bug = gateway.seed("Login fails", "Cannot log in with valid credentials")
    store = BugStore(gateway)

    async def run_test():
        await store.fetch_all()
        gateway.failures["update"] = NetworkError("timed out")
        return await store.update(bug.id, {"title": "Something else", "status": "closed"})

    result = asyncio.run(run_test())

    assert isinstance(result.error, NetworkError)
    assert store.get(bug.id).title == "Login fails"
    assert store.get(bug.id).status == "open"
    assert store.error
    assert not store.is_in_flight(bug.id)


def test_update_validates_changes_locally(gateway):
    bug = gateway.seed("Login fails", "Cannot log in with valid credentials")
    store = BugStore(gateway)

    async def run_test():
        await store.fetch_all()
        return await store.update(bug.id, {"status": "reopened"})

    result = asyncio.run(run_test())
    assert result.error.codes() == {"status": "INVALID_ENUM"}
    assert gateway.call_names() == ["list"]


def test_second_mutation_on_same_id_is_rejected(gateway):
    bug = gateway.seed("Login fails", "Cannot log in with valid credentials")
    store = BugStore(gateway)

    async def run_test():
        await store.fetch_all()
        gate = asyncio.Event()
        gateway.gates["update"] = gate

        first = asyncio.create_task(store.update(bug.id, {"status": "in-progress"}))
        await asyncio.sleep(0)
        assert store.is_in_flight(bug.id)

        second = await store.update(bug.id, {"status": "closed"})
        deletion = await store.delete(bug.id)

        gate.set()
        return await first, second, deletion

    first, second, deletion = asyncio.run(run_test())
    assert isinstance(first, Ok)
    assert isinstance(second.error, ConcurrentModification)
    assert isinstance(deletion.error, ConcurrentModification)
    assert store.get(bug.id).status == "in-progress"
    assert not store.is_in_flight(bug.id)


def test_distinct_ids_mutate_concurrently(gateway):
    a = gateway.seed("First bug", "Description 1")
    b = gateway.seed("Second bug", "Description 2")
    store = BugStore(gateway)

    async def run_test():
        await store.fetch_all()
        gate = asyncio.Event()
        gateway.gates["update"] = gate

        tasks = [
            asyncio.create_task(store.update(a.id, {"status": "closed"})),
            asyncio.create_task(store.update(b.id, {"status": "in-progress"})),
        ]
        await asyncio.sleep(0)
        assert store.loading
        assert store.is_in_flight(a.id) and store.is_in_flight(b.id)

        gate.set()
        return await asyncio.gather(*tasks)

    results = asyncio.run(run_test())
    assert all(isinstance(r, Ok) for r in results)
    assert [bug.status for bug in store.bugs] == ["closed", "in-progress"]
    assert not store.loading


def test_stale_update_is_not_reinserted(gateway):
    """A response for a bug dropped by a refresh is discarded."""
    bug = gateway.seed("Login fails", "Cannot log in with valid credentials")
    store = BugStore(gateway)

    async def run_test():
        await store.fetch_all()
        gate = asyncio.Event()
        gateway.gates["update"] = gate

        task = asyncio.create_task(store.update(bug.id, {"status": "closed"}))
        await asyncio.sleep(0)

        del gateway.records[bug.id]
        await store.fetch_all()
        gate.set()
        return await task

    result = asyncio.run(run_test())
    assert isinstance(result, Ok)
    assert bug.id not in store
    assert store.bugs == []


def test_delete_removes_entry(gateway):
    keep = gateway.seed("Keep me", "Description 1")
    drop = gateway.seed("Drop me", "Description 2")
    store = BugStore(gateway)

    async def run_test():
        await store.fetch_all()
        return await store.delete(drop.id)

    result = asyncio.run(run_test())
    assert result == Ok(None)
    assert [b.id for b in store.bugs] == [keep.id]


def test_delete_missing_id_leaves_collection_unchanged(gateway):
    gateway.seed("Keep me", "Description 1")
    store = BugStore(gateway)

    async def run_test():
        await store.fetch_all()
        before = store.bugs
        result = await store.delete("missing")
        return before, result

    before, result = asyncio.run(run_test())
    assert isinstance(result.error, NotFoundError)
    assert store.bugs == before
    assert gateway.call_names() == ["list"]


def test_delete_failure_keeps_entry(gateway):
    bug = gateway.seed("Keep me", "Description 1")
    store = BugStore(gateway)

    async def run_test():
        await store.fetch_all()
        gateway.failures["delete"] = NotFoundError(bug.id)
        return await store.delete(bug.id)

    result = asyncio.run(run_test())
    assert isinstance(result, Err)
    assert bug.id in store
    assert store.error == NotFoundError.user_message


def test_advance_follows_transition_table(gateway):
    """Advancing requests the next status, not an unconditional close."""
    bug = gateway.seed("Login fails", "Cannot log in with valid credentials")
    store = BugStore(gateway)

    async def run_test():
        await store.fetch_all()
        first = await store.advance(bug.id)
        second = await store.advance(bug.id)
        third = await store.advance(bug.id)
        return first, second, third

    first, second, third = asyncio.run(run_test())
    assert first.value.status == "in-progress"
    assert second.value.status == "closed"
    assert isinstance(third.error, ValidationError)
    assert third.error.codes() == {"status": "INVALID_TRANSITION"}

    updates = [call for call in gateway.calls if call[0] == "update"]
    assert [call[2] for call in updates] == [{"status": "in-progress"}, {"status": "closed"}]


def test_events_published_for_changes(gateway):
    store = BugStore(gateway)

    async def run_test():
        queue = await store.events.subscribe()
        assert store.events.subscriber_count == 1
        created = (await store.create(LOGIN)).unwrap()
        await store.advance(created.id)
        await store.delete(created.id)
        gateway.failures["list"] = NetworkError("refused")
        await store.fetch_all()

        events = []
        while not queue.empty():
            events.append(queue.get_nowait())
        await store.events.unsubscribe(queue)
        assert store.events.subscriber_count == 0
        return events

    events = asyncio.run(run_test())
    assert [e["type"] for e in events] == ["bug_created", "bug_updated", "bug_deleted", "error"]
    assert events[-1]["message"] == NetworkError.user_message


def test_reset_discards_pending_results(gateway):
    """After reset, a pending create resolves without touching the new session."""
    store = BugStore(gateway)

    async def run_test():
        gate = asyncio.Event()
        gateway.gates["create"] = gate
        task = asyncio.create_task(store.create(LOGIN))
        await asyncio.sleep(0)
        assert store.loading

        store.reset()
        assert not store.loading

        gate.set()
        await task

    asyncio.run(run_test())
    assert store.bugs == []
    assert not store.loading
    assert store.error is None


def test_results_support_pattern_matching(gateway):
    store = BugStore(gateway)

    def describe(result):
        match result:
            case Ok(value=bug):
                return f"created {bug.title}"
            case Err(error=ValidationError() as err):
                return f"invalid {sorted(err.field_errors)}"
            case Err(error=err):
                return err.user_message

    async def run_test():
        return [
            describe(await store.create(LOGIN)),
            describe(await store.create({"title": "", "description": ""})),
        ]

    assert asyncio.run(run_test()) == ["created Login fails", "invalid ['description', 'title']"]
