from events.domain.models import (
    BulkInsertResult,
    Event,
    FailedRecord,
    LedgerAudit,
    NewEvent,
    NewParticipant,
    Participant,
)
from events.domain.value_objects import Capacity, EventId, EventStatus, ParticipantId

__all__ = [
    "Event",
    "Participant",
    "NewEvent",
    "NewParticipant",
    "BulkInsertResult",
    "FailedRecord",
    "LedgerAudit",
    "EventId",
    "ParticipantId",
    "EventStatus",
    "Capacity",
]
