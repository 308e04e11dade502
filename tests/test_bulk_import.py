"""Unit tests for BulkImportService against the in-memory store.

Run with: pytest tests/test_bulk_import.py -v
"""

import uuid

import pytest

from events.domain.errors import (
    EventNotFoundError,
    PartialImportError,
    StoreUnavailableError,
)
from events.services.bulk_import import BulkImportService
from events.stores.memory_store import InMemoryEntityStore
from tests.factories import assert_ledger_consistent, new_event, new_participant


@pytest.fixture
def fail_on(store: InMemoryEntityStore, monkeypatch: pytest.MonkeyPatch):
    """Make the store fail when inserting a participant with one of the given names."""

    def install(*names: str) -> None:
        original = store.participants._insert

        def flaky(record):
            if record.name in names:
                raise StoreUnavailableError("disk full")
            return original(record)

        monkeypatch.setattr(store.participants, "_insert", flaky)

    return install


class TestBulkImport:
    def test_import_registers_everyone(self, store: InMemoryEntityStore, importer: BulkImportService):
        event = store.events.create_event(new_event())
        records = [new_participant(name) for name in ("P1", "P2", "P3")]

        created = importer.bulk_import(str(event.id), records)

        assert [p.name for p in created] == ["P1", "P2", "P3"]
        assert all(p.event_ids == {event.id} for p in created)
        stored = store.events.get_event(event.id)
        assert stored.registered == 3
        assert stored.participant_ids == {p.id for p in created}
        assert_ledger_consistent(store)

    def test_import_adds_to_existing_registrations(self, store: InMemoryEntityStore, importer: BulkImportService):
        event = store.events.create_event(new_event())
        importer.bulk_import(str(event.id), [new_participant("P1")])

        importer.bulk_import(str(event.id), [new_participant("P2"), new_participant("P3")])

        assert store.events.get_event(event.id).registered == 3
        assert_ledger_consistent(store)

    def test_empty_import_is_a_no_op(self, store: InMemoryEntityStore, importer: BulkImportService):
        event = store.events.create_event(new_event())

        assert importer.bulk_import(str(event.id), []) == []
        assert store.events.get_event(event.id).registered == 0

    def test_unknown_event_inserts_nothing(self, store: InMemoryEntityStore, importer: BulkImportService):
        with pytest.raises(EventNotFoundError):
            importer.bulk_import(str(uuid.uuid4()), [new_participant("P1")])

        assert store.participants.list_participants() == []

    def test_partial_insert_registers_created_subset(
        self, store: InMemoryEntityStore, importer: BulkImportService, fail_on
    ):
        event = store.events.create_event(new_event())
        fail_on("P3")

        with pytest.raises(PartialImportError) as excinfo:
            importer.bulk_import(str(event.id), [new_participant(n) for n in ("P1", "P2", "P3")])

        error = excinfo.value
        assert [p.name for p in error.created] == ["P1", "P2"]
        assert [(f.index, f.record.name) for f in error.failed] == [(2, "P3")]
        stored = store.events.get_event(event.id)
        assert stored.registered == 2
        assert stored.participant_ids == {p.id for p in error.created}
        assert_ledger_consistent(store)

    def test_insert_stops_at_first_failure(
        self, store: InMemoryEntityStore, importer: BulkImportService, fail_on
    ):
        event = store.events.create_event(new_event())
        fail_on("P2")

        with pytest.raises(PartialImportError) as excinfo:
            importer.bulk_import(str(event.id), [new_participant(n) for n in ("P1", "P2", "P3")])

        assert [(f.index, f.reason) for f in excinfo.value.failed] == [
            (1, "insert failed"),
            (2, "not attempted"),
        ]
        assert [p.name for p in store.participants.list_participants()] == ["P1"]
        assert store.events.get_event(event.id).registered == 1

    def test_total_insert_failure_leaves_event_untouched(
        self, store: InMemoryEntityStore, importer: BulkImportService, fail_on
    ):
        event = store.events.create_event(new_event())
        fail_on("P1")

        with pytest.raises(StoreUnavailableError):
            importer.bulk_import(str(event.id), [new_participant("P1"), new_participant("P2")])

        assert store.participants.list_participants() == []
        assert store.events.get_event(event.id).registered == 0

    def test_failed_reconciliation_removes_created_participants(
        self, store: InMemoryEntityStore, importer: BulkImportService, monkeypatch: pytest.MonkeyPatch
    ):
        event = store.events.create_event(new_event())

        def unavailable(*args, **kwargs):
            raise StoreUnavailableError("timeout")

        monkeypatch.setattr(store.events, "increment_registered", unavailable)

        with pytest.raises(StoreUnavailableError):
            importer.bulk_import(str(event.id), [new_participant("P1"), new_participant("P2")])

        assert store.participants.list_participants() == []
        stored = store.events.get_event(event.id)
        assert stored.registered == 0
        assert stored.participant_ids == frozenset()
