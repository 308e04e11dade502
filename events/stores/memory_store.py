"""In-memory implementation of the entity store.

Each write is atomic on its own, but there are no transactions: atomic() groups
nothing and a failure halfway through an operation leaves earlier writes in
place. Services use the ordering and compensation paths against this store.
The API serves from it when settings.ENTITY_STORE is "memory".
"""

import itertools
import threading
import uuid
from collections.abc import Mapping, Sequence
from contextlib import AbstractContextManager, nullcontext
from dataclasses import replace
from datetime import datetime
from typing import Any

from django.utils import timezone

from events.domain import (
    BulkInsertResult,
    Event,
    EventId,
    EventStatus,
    FailedRecord,
    NewEvent,
    NewParticipant,
    Participant,
    ParticipantId,
)
from events.domain.errors import StoreUnavailableError
from events.stores.interfaces import (
    EntityStore,
    EventStore,
    ParticipantStore,
    RegistrationStore,
)


class _Registrations:
    """(event, participant) pairs shared by the three stores."""

    def __init__(self) -> None:
        self.pairs: set[tuple[EventId, ParticipantId]] = set()

    def participants_of(self, event_id: EventId) -> frozenset[ParticipantId]:
        return frozenset(p for e, p in self.pairs if e == event_id)

    def events_of(self, participant_id: ParticipantId) -> frozenset[EventId]:
        return frozenset(e for e, p in self.pairs if p == participant_id)


class InMemoryEventStore(EventStore):
    def __init__(self, registrations: _Registrations, lock: threading.RLock) -> None:
        self._rows: dict[EventId, Event] = {}
        self._registrations = registrations
        self._lock = lock

    def _view(self, row: Event) -> Event:
        return replace(row, participant_ids=self._registrations.participants_of(row.id))

    def list_events(self, status: EventStatus | None = None) -> list[Event]:
        with self._lock:
            rows = [r for r in self._rows.values() if status is None or r.status == status]
            return [self._view(r) for r in sorted(rows, key=lambda r: r.date)]

    def get_event(self, event_id: EventId) -> Event | None:
        with self._lock:
            row = self._rows.get(event_id)
            return self._view(row) if row is not None else None

    def event_exists(self, event_id: EventId) -> bool:
        with self._lock:
            return event_id in self._rows

    def create_event(self, new_event: NewEvent) -> Event:
        row = Event(
            id=EventId(uuid.uuid4()),
            name=new_event.name,
            description=new_event.description,
            date=new_event.date,
            location=new_event.location,
            capacity=new_event.capacity,
            registered=0,
            organizer_id=new_event.organizer_id,
            status=new_event.status,
            created_at=timezone.now(),
        )
        with self._lock:
            self._rows[row.id] = row
        return row

    def update_event(self, event_id: EventId, changes: Mapping[str, Any]) -> Event | None:
        with self._lock:
            row = self._rows.get(event_id)
            if row is None:
                return None
            self._rows[event_id] = replace(row, **changes)
            return self._view(self._rows[event_id])

    def delete_event(self, event_id: EventId) -> bool:
        with self._lock:
            return self._rows.pop(event_id, None) is not None

    def increment_registered(self, event_id: EventId, by: int) -> bool:
        with self._lock:
            row = self._rows.get(event_id)
            if row is None:
                return False
            self._rows[event_id] = replace(row, registered=row.registered + by)
            return True

    def decrement_registered(self, event_id: EventId) -> bool:
        with self._lock:
            row = self._rows.get(event_id)
            if row is None or row.registered <= 0:
                return False
            self._rows[event_id] = replace(row, registered=row.registered - 1)
            return True


class InMemoryParticipantStore(ParticipantStore):
    def __init__(self, registrations: _Registrations, lock: threading.RLock) -> None:
        self._rows: dict[ParticipantId, Participant] = {}
        self._order: dict[ParticipantId, int] = {}
        self._sequence = itertools.count()
        self._registrations = registrations
        self._lock = lock

    def _view(self, row: Participant) -> Participant:
        return replace(row, event_ids=self._registrations.events_of(row.id))

    def _insert(self, new_participant: NewParticipant) -> Participant:
        row = Participant(
            id=ParticipantId(uuid.uuid4()),
            name=new_participant.name,
            email=new_participant.email,
            phone=new_participant.phone,
            checked_in=False,
            check_in_time=None,
            created_at=timezone.now(),
        )
        with self._lock:
            self._rows[row.id] = row
            self._order[row.id] = next(self._sequence)
        return row

    def list_participants(
        self, event_id: EventId | None = None, search: str | None = None
    ) -> list[Participant]:
        with self._lock:
            rows = [self._view(r) for r in self._rows.values()]
            if event_id is not None:
                rows = [r for r in rows if event_id in r.event_ids]
            if search:
                needle = search.lower()
                rows = [
                    r
                    for r in rows
                    if needle in r.name.lower() or needle in r.email.lower() or needle in r.phone.lower()
                ]
            return sorted(rows, key=lambda r: self._order[r.id], reverse=True)

    def get_participant(self, participant_id: ParticipantId) -> Participant | None:
        with self._lock:
            row = self._rows.get(participant_id)
            return self._view(row) if row is not None else None

    def create_participant(self, new_participant: NewParticipant) -> Participant:
        return self._insert(new_participant)

    def update_participant(
        self, participant_id: ParticipantId, changes: Mapping[str, Any]
    ) -> Participant | None:
        with self._lock:
            row = self._rows.get(participant_id)
            if row is None:
                return None
            self._rows[participant_id] = replace(row, **changes)
            return self._view(self._rows[participant_id])

    def delete_participant(self, participant_id: ParticipantId) -> bool:
        with self._lock:
            if self._rows.pop(participant_id, None) is None:
                return False
            del self._order[participant_id]
            self._registrations.pairs = {
                (e, p) for e, p in self._registrations.pairs if p != participant_id
            }
            return True

    def bulk_create_participants(self, records: Sequence[NewParticipant]) -> BulkInsertResult:
        created: list[Participant] = []
        for index, record in enumerate(records):
            try:
                created.append(self._insert(record))
            except StoreUnavailableError:
                failed = [FailedRecord(index=index, record=record, reason="insert failed")]
                failed.extend(
                    FailedRecord(index=i, record=r, reason="not attempted")
                    for i, r in enumerate(records[index + 1 :], start=index + 1)
                )
                return BulkInsertResult(created=tuple(created), failed=tuple(failed))
        return BulkInsertResult(created=tuple(created))

    def mark_checked_in(self, participant_id: ParticipantId, at: datetime) -> Participant | None:
        with self._lock:
            row = self._rows.get(participant_id)
            if row is None or row.checked_in:
                return None
            self._rows[participant_id] = replace(row, checked_in=True, check_in_time=at)
            return self._view(self._rows[participant_id])


class InMemoryRegistrationStore(RegistrationStore):
    def __init__(self, registrations: _Registrations, lock: threading.RLock) -> None:
        self._registrations = registrations
        self._lock = lock

    def add(self, event_id: EventId, participant_id: ParticipantId) -> bool:
        with self._lock:
            pair = (event_id, participant_id)
            if pair in self._registrations.pairs:
                return False
            self._registrations.pairs.add(pair)
            return True

    def add_many(self, event_id: EventId, participant_ids: Sequence[ParticipantId]) -> None:
        with self._lock:
            self._registrations.pairs.update((event_id, pid) for pid in participant_ids)

    def remove(self, event_id: EventId, participant_id: ParticipantId) -> bool:
        with self._lock:
            pair = (event_id, participant_id)
            if pair not in self._registrations.pairs:
                return False
            self._registrations.pairs.discard(pair)
            return True

    def remove_for_event(self, event_id: EventId) -> int:
        with self._lock:
            doomed = {pair for pair in self._registrations.pairs if pair[0] == event_id}
            self._registrations.pairs -= doomed
            return len(doomed)

    def count_for_event(self, event_id: EventId) -> int:
        with self._lock:
            return len(self._registrations.participants_of(event_id))


class InMemoryEntityStore(EntityStore):
    """Process-local entity store without transactions."""

    transactional = False

    def __init__(self) -> None:
        lock = threading.RLock()
        registrations = _Registrations()
        self.events = InMemoryEventStore(registrations, lock)
        self.participants = InMemoryParticipantStore(registrations, lock)
        self.registrations = InMemoryRegistrationStore(registrations, lock)

    def atomic(self) -> AbstractContextManager[None]:
        return nullcontext()
