"""Event service - all business logic lives here.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors

Event deletion touches registrations and lives in the registration ledger.
"""

from collections.abc import Mapping
from typing import Any

import structlog

from events.domain import Event, EventStatus, NewEvent
from events.domain.errors import EventNotFoundError
from events.services.identifiers import parse_event_id
from events.stores.interfaces import EVENT_UPDATABLE_FIELDS, EntityStore

logger = structlog.get_logger(__name__)


class EventService:
    """Service for event catalog operations."""

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def list_events(self, status: EventStatus | None = None) -> list[Event]:
        """Return all events, optionally only those with the given status."""
        return self._store.events.list_events(status=status)

    def get_event(self, event_id: str) -> Event:
        """Return an event by ID.

        Raises:
            InvalidEventIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
        """
        event = self._store.events.get_event(parse_event_id(event_id))
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def create_event(self, new_event: NewEvent) -> Event:
        event = self._store.events.create_event(new_event)
        logger.info("event_created", event_id=str(event.id), organizer_id=str(event.organizer_id))
        return event

    def update_event(self, event_id: str, changes: Mapping[str, Any]) -> Event:
        """Update event fields.

        `registered` and the participant set are not updatable here; they
        belong to the registration ledger. Lowering capacity below the current
        registration count is allowed.

        Raises:
            InvalidEventIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
            ValueError: If changes names a field that cannot be updated.
        """
        unknown = set(changes) - EVENT_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        event = self._store.events.update_event(parse_event_id(event_id), changes)
        if event is None:
            raise EventNotFoundError(event_id)
        logger.info("event_updated", event_id=event_id, fields=sorted(changes))
        return event
