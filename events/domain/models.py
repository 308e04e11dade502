"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in events/models.py (persistence layer).

Event.participant_ids and Participant.event_ids are both read views of the
same Registration rows, so the two sides of the association cannot disagree.
Event.registered is a stored counter kept next to them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from events.domain.value_objects import Capacity, EventId, EventStatus, ParticipantId


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event."""

    id: EventId
    name: str
    description: str
    date: datetime
    location: str
    capacity: Capacity
    registered: int
    organizer_id: UUID
    status: EventStatus
    created_at: datetime
    participant_ids: frozenset[ParticipantId] = frozenset()

    @property
    def is_over_capacity(self) -> bool:
        return self.registered > self.capacity.value


@dataclass(frozen=True)
class Participant:
    """Domain representation of a Participant."""

    id: ParticipantId
    name: str
    email: str
    phone: str
    checked_in: bool
    check_in_time: datetime | None
    created_at: datetime
    event_ids: frozenset[EventId] = frozenset()

    def is_registered_for(self, event_id: EventId) -> bool:
        return event_id in self.event_ids


@dataclass(frozen=True)
class NewEvent:
    """Fields needed to create an Event."""

    name: str
    description: str
    date: datetime
    location: str
    capacity: Capacity
    organizer_id: UUID
    status: EventStatus = EventStatus.UPCOMING


@dataclass(frozen=True)
class NewParticipant:
    """Fields needed to create a Participant."""

    name: str
    email: str
    phone: str


@dataclass(frozen=True)
class FailedRecord:
    """A bulk-insert record that was not created."""

    index: int
    record: NewParticipant
    reason: str


@dataclass(frozen=True)
class BulkInsertResult:
    """Outcome of an ordered bulk insert.

    `created` holds the persisted participants in input order. `failed` holds
    the first record that failed and every record after it.
    """

    created: tuple[Participant, ...] = ()
    failed: tuple[FailedRecord, ...] = ()

    @property
    def is_complete(self) -> bool:
        return not self.failed


@dataclass(frozen=True)
class LedgerAudit:
    """Stored `registered` counter compared with the registrations behind it."""

    event_id: EventId
    registered: int
    registrations: int
    participant_ids: frozenset[ParticipantId] = field(default_factory=frozenset)

    @property
    def is_consistent(self) -> bool:
        return self.registered == self.registrations
