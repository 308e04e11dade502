"""Check-in state machine.

A participant moves from not checked in to checked in exactly once. The flag
lives on the participant, so checking in for one event counts for every event
the participant is registered for.
"""

from collections.abc import Callable
from datetime import datetime

import structlog
from django.utils import timezone

from events.domain import Participant
from events.domain.errors import (
    AlreadyCheckedInError,
    NotRegisteredError,
    ParticipantNotFoundError,
)
from events.services.identifiers import parse_event_id, parse_participant_id
from events.stores.interfaces import EntityStore

logger = structlog.get_logger(__name__)


class CheckInService:
    """Service for checking participants in at an event."""

    def __init__(self, store: EntityStore, clock: Callable[[], datetime] = timezone.now) -> None:
        self._store = store
        self._clock = clock

    def check_in(self, participant_id: str, event_id: str) -> Participant:
        """Check a participant in for an event they are registered for.

        Raises:
            InvalidParticipantIdError / InvalidEventIdError: On malformed IDs.
            ParticipantNotFoundError: If the participant does not exist.
            NotRegisteredError: If the participant is not registered for the event.
            AlreadyCheckedInError: If the participant is already checked in.
        """
        pid = parse_participant_id(participant_id)
        eid = parse_event_id(event_id)

        participant = self._store.participants.get_participant(pid)
        if participant is None:
            raise ParticipantNotFoundError(participant_id)
        if not participant.is_registered_for(eid):
            raise NotRegisteredError(participant_id, event_id)
        if participant.checked_in:
            raise AlreadyCheckedInError(participant_id)

        checked_in = self._store.participants.mark_checked_in(pid, self._clock())
        if checked_in is None:
            # Lost a race: someone else checked in or deleted the participant
            # between the read and the guarded write.
            if self._store.participants.get_participant(pid) is None:
                raise ParticipantNotFoundError(participant_id)
            raise AlreadyCheckedInError(participant_id)

        logger.info(
            "participant_checked_in",
            participant_id=participant_id,
            event_id=event_id,
            check_in_time=checked_in.check_in_time.isoformat() if checked_in.check_in_time else None,
        )
        return checked_in
