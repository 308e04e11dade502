"""Integration tests for the services on top of the Django ORM store.

These exercise the transactional path: failures roll back every write of the
operation instead of running compensations.
Run with: pytest tests/test_django_store.py -v
"""

import uuid

import pytest
from django.db import DatabaseError

from events import models
from events.domain import EventId
from events.domain.errors import (
    CounterUnderflowError,
    PartialImportError,
    StoreUnavailableError,
)
from events.services.bulk_import import BulkImportService
from events.services.check_in import CheckInService
from events.services.registration_ledger import RegistrationLedger
from events.stores.django_store import DjangoEntityStore, DjangoEventStore
from tests.factories import FIXED_NOW, assert_ledger_consistent, new_event, new_participant

pytestmark = pytest.mark.django_db


class TestDjangoStore:
    def test_round_trip_event(self, django_store: DjangoEntityStore):
        created = django_store.events.create_event(new_event(capacity=3))

        loaded = django_store.events.get_event(created.id)

        assert loaded == created

    def test_missing_event(self, django_store: DjangoEntityStore):
        missing = EventId(uuid.uuid4())

        assert django_store.events.get_event(missing) is None
        assert not django_store.events.event_exists(missing)
        assert not django_store.events.increment_registered(missing, 1)

    def test_decrement_stops_at_zero(self, django_store: DjangoEntityStore):
        event = django_store.events.create_event(new_event())
        django_store.events.increment_registered(event.id, 1)

        assert django_store.events.decrement_registered(event.id)
        assert not django_store.events.decrement_registered(event.id)
        assert django_store.events.get_event(event.id).registered == 0

    def test_duplicate_registration_is_refused(self, django_store: DjangoEntityStore):
        event = django_store.events.create_event(new_event())
        participant = django_store.participants.create_participant(new_participant())

        assert django_store.registrations.add(event.id, participant.id)
        assert not django_store.registrations.add(event.id, participant.id)
        assert django_store.registrations.count_for_event(event.id) == 1

    def test_mark_checked_in_only_once(self, django_store: DjangoEntityStore):
        participant = django_store.participants.create_participant(new_participant())

        first = django_store.participants.mark_checked_in(participant.id, FIXED_NOW)
        second = django_store.participants.mark_checked_in(participant.id, FIXED_NOW)

        assert first.checked_in
        assert first.check_in_time == FIXED_NOW
        assert second is None

    def test_database_errors_become_store_unavailable(
        self, django_store: DjangoEntityStore, monkeypatch: pytest.MonkeyPatch
    ):
        def broken(*args, **kwargs):
            raise DatabaseError("connection lost")

        monkeypatch.setattr(models.Event.objects, "filter", broken)

        with pytest.raises(StoreUnavailableError):
            django_store.events.event_exists(EventId(uuid.uuid4()))


class TestLedgerOnDjango:
    def test_scenarios_keep_ledger_consistent(self, django_store: DjangoEntityStore):
        ledger = RegistrationLedger(django_store)
        first = django_store.events.create_event(new_event(name="E1", capacity=2))
        second = django_store.events.create_event(new_event(name="E2"))

        people = [
            ledger.create_participant(new_participant(name), event_id=str(first.id))
            for name in ("P1", "P2", "P3")
        ]
        ledger.register(str(second.id), str(people[0].id))
        assert django_store.events.get_event(first.id).registered == 3
        assert_ledger_consistent(django_store)

        ledger.deregister(str(people[0].id))

        assert django_store.events.get_event(first.id).registered == 2
        assert django_store.events.get_event(second.id).registered == 0
        assert django_store.participants.get_participant(people[0].id) is None
        assert_ledger_consistent(django_store)

    def test_underflow_rolls_back_whole_deregistration(self, django_store: DjangoEntityStore):
        ledger = RegistrationLedger(django_store)
        first = django_store.events.create_event(new_event(name="E1"))
        second = django_store.events.create_event(new_event(name="E2"))
        participant = ledger.create_participant(new_participant(), event_id=str(first.id))
        ledger.register(str(second.id), str(participant.id))
        models.Event.objects.filter(pk=second.id.value).update(registered=0)

        with pytest.raises(CounterUnderflowError):
            ledger.deregister(str(participant.id))

        assert django_store.events.get_event(first.id).registered == 1
        assert django_store.participants.get_participant(participant.id).event_ids == {first.id, second.id}

    def test_delete_event_removes_registrations(self, django_store: DjangoEntityStore):
        ledger = RegistrationLedger(django_store)
        event = django_store.events.create_event(new_event())
        participant = ledger.create_participant(new_participant(), event_id=str(event.id))

        ledger.delete_event(str(event.id))

        assert django_store.participants.get_participant(participant.id).event_ids == frozenset()
        assert not models.Registration.objects.exists()

    def test_check_in(self, django_store: DjangoEntityStore):
        ledger = RegistrationLedger(django_store)
        event = django_store.events.create_event(new_event())
        participant = ledger.create_participant(new_participant(), event_id=str(event.id))

        result = CheckInService(django_store, clock=lambda: FIXED_NOW).check_in(
            str(participant.id), str(event.id)
        )

        assert result.checked_in
        assert models.Participant.objects.get(pk=participant.id.value).check_in_time == FIXED_NOW


class TestBulkImportOnDjango:
    def test_partial_import_commits_created_subset(
        self, django_store: DjangoEntityStore, monkeypatch: pytest.MonkeyPatch
    ):
        event = django_store.events.create_event(new_event())
        original = models.Participant.objects.create

        def flaky(**fields):
            if fields["name"] == "P3":
                raise DatabaseError("disk full")
            return original(**fields)

        monkeypatch.setattr(models.Participant.objects, "create", flaky)

        with pytest.raises(PartialImportError) as excinfo:
            BulkImportService(django_store).bulk_import(
                str(event.id), [new_participant(n) for n in ("P1", "P2", "P3")]
            )

        assert [f.record.name for f in excinfo.value.failed] == ["P3"]
        stored = django_store.events.get_event(event.id)
        assert stored.registered == 2
        assert stored.participant_ids == {p.id for p in excinfo.value.created}
        assert models.Participant.objects.count() == 2

    def test_failed_reconciliation_rolls_back_inserts(
        self, django_store: DjangoEntityStore, monkeypatch: pytest.MonkeyPatch
    ):
        event = django_store.events.create_event(new_event())

        def unavailable(self, *args, **kwargs):
            raise StoreUnavailableError("timeout")

        monkeypatch.setattr(DjangoEventStore, "increment_registered", unavailable)

        with pytest.raises(StoreUnavailableError):
            BulkImportService(django_store).bulk_import(
                str(event.id), [new_participant("P1"), new_participant("P2")]
            )

        assert models.Participant.objects.count() == 0
        assert models.Registration.objects.count() == 0
        assert models.Event.objects.get(pk=event.id.value).registered == 0
