"""Builders for domain inputs and a ledger invariant check shared by tests."""

import uuid
from datetime import datetime, timedelta, timezone as dt_timezone

from django.utils import timezone

from events.domain import Capacity, NewEvent, NewParticipant
from events.stores.interfaces import EntityStore

FIXED_NOW = datetime(2026, 5, 1, 9, 30, tzinfo=dt_timezone.utc)


def new_event(capacity: int = 50, **overrides) -> NewEvent:
    fields = {
        "name": "PyCon Meetup",
        "description": "Monthly meetup",
        "date": timezone.now() + timedelta(days=7),
        "location": "Main Hall",
        "capacity": Capacity(capacity),
        "organizer_id": uuid.uuid4(),
    }
    fields.update(overrides)
    return NewEvent(**fields)


def new_participant(name: str = "Ada Lovelace", **overrides) -> NewParticipant:
    slug = name.lower().replace(" ", ".")
    fields = {"name": name, "email": f"{slug}@example.com", "phone": "+43 660 1234567"}
    fields.update(overrides)
    return NewParticipant(**fields)


def assert_ledger_consistent(store: EntityStore) -> None:
    """Counter equals set size, and both sides of every association agree."""
    for event in store.events.list_events():
        assert event.registered == len(event.participant_ids), event.id
        for pid in event.participant_ids:
            participant = store.participants.get_participant(pid)
            assert participant is not None
            assert event.id in participant.event_ids
    for participant in store.participants.list_participants():
        for eid in participant.event_ids:
            event = store.events.get_event(eid)
            assert event is not None
            assert participant.id in event.participant_ids
