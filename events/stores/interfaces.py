"""Store interfaces (repository pattern).

Stores must be swappable and return domain models.

Stores report "not found" with None or False and leave it to the services to
raise domain errors. Persistence failures surface as StoreUnavailableError.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any

from events.domain import (
    BulkInsertResult,
    Event,
    EventId,
    EventStatus,
    NewEvent,
    NewParticipant,
    Participant,
    ParticipantId,
)

EVENT_UPDATABLE_FIELDS = frozenset({"name", "description", "date", "location", "capacity", "status"})
PARTICIPANT_UPDATABLE_FIELDS = frozenset({"name", "email", "phone"})


class EventStore(ABC):
    """Interface for event persistence operations."""

    @abstractmethod
    def list_events(self, status: EventStatus | None = None) -> list[Event]:
        """Return events ordered by date ascending, optionally filtered by status."""
        ...

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...

    @abstractmethod
    def event_exists(self, event_id: EventId) -> bool:
        """Check if an event exists."""
        ...

    @abstractmethod
    def create_event(self, new_event: NewEvent) -> Event:
        """Persist a new event with `registered` at zero."""
        ...

    @abstractmethod
    def update_event(self, event_id: EventId, changes: Mapping[str, Any]) -> Event | None:
        """Apply field changes (keys from EVENT_UPDATABLE_FIELDS), or None if not found."""
        ...

    @abstractmethod
    def delete_event(self, event_id: EventId) -> bool:
        """Delete an event. Return False if it did not exist."""
        ...

    @abstractmethod
    def increment_registered(self, event_id: EventId, by: int) -> bool:
        """Atomically add `by` to the registered counter.

        Return False if the event does not exist.
        """
        ...

    @abstractmethod
    def decrement_registered(self, event_id: EventId) -> bool:
        """Atomically subtract one from the registered counter if it is above zero.

        Return False if the event does not exist or the counter is already zero.
        """
        ...


class ParticipantStore(ABC):
    """Interface for participant persistence operations."""

    @abstractmethod
    def list_participants(
        self, event_id: EventId | None = None, search: str | None = None
    ) -> list[Participant]:
        """Return participants, newest first.

        `event_id` keeps those registered for the event. `search` matches name,
        email or phone case-insensitively.
        """
        ...

    @abstractmethod
    def get_participant(self, participant_id: ParticipantId) -> Participant | None:
        """Return a participant by ID, or None if not found."""
        ...

    @abstractmethod
    def create_participant(self, new_participant: NewParticipant) -> Participant:
        """Persist a new participant with no registrations."""
        ...

    @abstractmethod
    def update_participant(
        self, participant_id: ParticipantId, changes: Mapping[str, Any]
    ) -> Participant | None:
        """Apply contact field changes, or None if not found."""
        ...

    @abstractmethod
    def delete_participant(self, participant_id: ParticipantId) -> bool:
        """Delete a participant. Return False if it did not exist."""
        ...

    @abstractmethod
    def bulk_create_participants(self, records: Sequence[NewParticipant]) -> BulkInsertResult:
        """Insert records in order, stopping at the first failure.

        Never raises for a failed record: the result reports exactly which
        records were created and which were not.
        """
        ...

    @abstractmethod
    def mark_checked_in(self, participant_id: ParticipantId, at: datetime) -> Participant | None:
        """Set the check-in flag if it is not set yet.

        Return None if the participant does not exist or is already checked in.
        """
        ...


class RegistrationStore(ABC):
    """Interface for the event/participant association."""

    @abstractmethod
    def add(self, event_id: EventId, participant_id: ParticipantId) -> bool:
        """Associate a participant with an event. Return False if already associated."""
        ...

    @abstractmethod
    def add_many(self, event_id: EventId, participant_ids: Sequence[ParticipantId]) -> None:
        """Associate several new participants with one event."""
        ...

    @abstractmethod
    def remove(self, event_id: EventId, participant_id: ParticipantId) -> bool:
        """Remove an association. Return False if it did not exist."""
        ...

    @abstractmethod
    def remove_for_event(self, event_id: EventId) -> int:
        """Remove every association of an event and return how many there were."""
        ...

    @abstractmethod
    def count_for_event(self, event_id: EventId) -> int:
        """Return the number of participants associated with an event."""
        ...


class EntityStore(ABC):
    """The three stores plus the unit of work that spans them."""

    events: EventStore
    participants: ParticipantStore
    registrations: RegistrationStore

    #: True when atomic() rolls back every store on error.
    transactional: bool = False

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Return a context manager grouping writes into one unit of work."""
        ...
