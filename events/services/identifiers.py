"""Parsing of identifiers received from callers."""

from events.domain import EventId, ParticipantId
from events.domain.errors import InvalidEventIdError, InvalidParticipantIdError


def parse_event_id(value: str) -> EventId:
    """Raises InvalidEventIdError if value is not a UUID."""
    try:
        return EventId.from_string(value)
    except (TypeError, ValueError, AttributeError) as exc:
        raise InvalidEventIdError() from exc


def parse_participant_id(value: str) -> ParticipantId:
    """Raises InvalidParticipantIdError if value is not a UUID."""
    try:
        return ParticipantId.from_string(value)
    except (TypeError, ValueError, AttributeError) as exc:
        raise InvalidParticipantIdError() from exc
