"""Participant lookups and contact field updates.

Creation and deletion change registrations and live in the registration ledger.
"""

from collections.abc import Mapping
from typing import Any

import structlog

from events.domain import Participant
from events.domain.errors import ParticipantNotFoundError
from events.services.identifiers import parse_event_id, parse_participant_id
from events.stores.interfaces import PARTICIPANT_UPDATABLE_FIELDS, EntityStore

logger = structlog.get_logger(__name__)


class ParticipantService:
    """Service for participant read and update operations."""

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def list_participants(
        self, event_id: str | None = None, search: str | None = None
    ) -> list[Participant]:
        """Return participants, newest first.

        Raises:
            InvalidEventIdError: If event_id is given and is not a valid UUID.
        """
        eid = parse_event_id(event_id) if event_id is not None else None
        return self._store.participants.list_participants(event_id=eid, search=search)

    def get_participant(self, participant_id: str) -> Participant:
        """Return a participant by ID.

        Raises:
            InvalidParticipantIdError: If the participant_id is not a valid UUID.
            ParticipantNotFoundError: If the participant does not exist.
        """
        participant = self._store.participants.get_participant(parse_participant_id(participant_id))
        if participant is None:
            raise ParticipantNotFoundError(participant_id)
        return participant

    def update_participant(self, participant_id: str, changes: Mapping[str, Any]) -> Participant:
        """Update name, email or phone.

        Raises:
            InvalidParticipantIdError: If the participant_id is not a valid UUID.
            ParticipantNotFoundError: If the participant does not exist.
            ValueError: If changes names a field that cannot be updated.
        """
        unknown = set(changes) - PARTICIPANT_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        participant = self._store.participants.update_participant(
            parse_participant_id(participant_id), changes
        )
        if participant is None:
            raise ParticipantNotFoundError(participant_id)
        logger.info("participant_updated", participant_id=participant_id, fields=sorted(changes))
        return participant
