"""Domain error codes for the events module.

Errors fall into four kinds:

- not found: a referenced event or participant does not exist
- invalid state: a registration or check-in precondition does not hold
- consistency fault: the ledger could not be kept in step and the caller must know
- store unavailable: the persistence layer failed
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from events.domain.models import FailedRecord, Participant


class ErrorCode(Enum):
    """Domain error codes."""

    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    PARTICIPANT_NOT_FOUND = "PARTICIPANT_NOT_FOUND"
    INVALID_EVENT_ID = "INVALID_EVENT_ID"
    INVALID_PARTICIPANT_ID = "INVALID_PARTICIPANT_ID"
    NOT_REGISTERED = "NOT_REGISTERED"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"
    COUNTER_UNDERFLOW = "COUNTER_UNDERFLOW"
    PARTIAL_IMPORT = "PARTIAL_IMPORT"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(DomainError):
    """A referenced entity does not exist."""


class InvalidStateError(DomainError):
    """A state machine precondition does not hold. Nothing was mutated."""


class ConsistencyFault(DomainError):
    """The ledger detected or produced a desynchronization."""


class EventNotFoundError(NotFoundError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
        )
        self.event_id = event_id


class ParticipantNotFoundError(NotFoundError):
    """Raised when a participant is not found."""

    def __init__(self, participant_id: str) -> None:
        super().__init__(
            code=ErrorCode.PARTICIPANT_NOT_FOUND,
            message="Participant not found",
        )
        self.participant_id = participant_id


class InvalidEventIdError(DomainError):
    """Raised when an event ID is invalid."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_EVENT_ID,
            message="Invalid event ID format",
        )


class InvalidParticipantIdError(DomainError):
    """Raised when a participant ID is invalid."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_PARTICIPANT_ID,
            message="Invalid participant ID format",
        )


class NotRegisteredError(InvalidStateError):
    def __init__(self, participant_id: str, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.NOT_REGISTERED,
            message="Participant not registered for this event",
        )
        self.participant_id = participant_id
        self.event_id = event_id


class AlreadyRegisteredError(InvalidStateError):
    def __init__(self, participant_id: str, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_REGISTERED,
            message="Participant already registered for this event",
        )
        self.participant_id = participant_id
        self.event_id = event_id


class AlreadyCheckedInError(InvalidStateError):
    def __init__(self, participant_id: str) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_CHECKED_IN,
            message="Participant already checked in",
        )
        self.participant_id = participant_id


class CounterUnderflowError(ConsistencyFault):
    """Raised when decrementing `registered` would take it below zero.

    The counter is never clamped. Reaching zero while a registration still
    exists means an earlier operation left the ledger out of step.
    """

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.COUNTER_UNDERFLOW,
            message="Event registration count is out of sync",
        )
        self.event_id = event_id


class PartialImportError(ConsistencyFault):
    """Raised when a bulk import created only some of its records.

    The created participants are registered for the event. The failed records
    were not created and may be resubmitted.
    """

    def __init__(
        self,
        event_id: str,
        created: Sequence["Participant"],
        failed: Sequence["FailedRecord"],
    ) -> None:
        super().__init__(
            code=ErrorCode.PARTIAL_IMPORT,
            message=f"Imported {len(created)} of {len(created) + len(failed)} participants",
        )
        self.event_id = event_id
        self.created = tuple(created)
        self.failed = tuple(failed)


class StoreUnavailableError(DomainError):
    """Raised when the underlying persistence layer fails."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(
            code=ErrorCode.STORE_UNAVAILABLE,
            message="Storage is temporarily unavailable",
        )
        self.detail = detail
