"""Registration ledger.

Keeps three things in step whenever a participant joins or leaves an event:
the registration rows (read as Event.participant_ids and
Participant.event_ids) and the event's `registered` counter.

Every multi-step operation runs inside `store.atomic()`. With a transactional
store that is the whole story. Without one, steps run in a fixed order and a
failed step undoes what the operation already wrote before the error is
re-raised, so a failure leaves fewer side effects rather than a guessed
completion. Undo failures are logged as `ledger_reconciliation_required`.

Capacity is not enforced here: registering past capacity succeeds.
"""

from collections.abc import Callable, Sequence

import structlog

from events.domain import (
    EventId,
    LedgerAudit,
    NewParticipant,
    Participant,
    ParticipantId,
)
from events.domain.errors import (
    AlreadyRegisteredError,
    CounterUnderflowError,
    DomainError,
    EventNotFoundError,
    ParticipantNotFoundError,
    StoreUnavailableError,
)
from events.services.identifiers import parse_event_id, parse_participant_id
from events.stores.interfaces import EntityStore

logger = structlog.get_logger(__name__)


class RegistrationLedger:
    """Service for registration, deregistration and event deletion."""

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def register(self, event_id: str, participant_id: str) -> Participant:
        """Register an existing participant for an event.

        Raises:
            InvalidEventIdError / InvalidParticipantIdError: On malformed IDs.
            EventNotFoundError: If the event does not exist.
            ParticipantNotFoundError: If the participant does not exist.
            AlreadyRegisteredError: If the participant is already registered.
        """
        eid = parse_event_id(event_id)
        pid = parse_participant_id(participant_id)
        with self._store.atomic():
            if not self._store.events.event_exists(eid):
                raise EventNotFoundError(event_id)
            participant = self._store.participants.get_participant(pid)
            if participant is None:
                raise ParticipantNotFoundError(participant_id)
            if not self._store.registrations.add(eid, pid):
                raise AlreadyRegisteredError(participant_id, event_id)
            self._count(eid, [pid])
            refreshed = self._store.participants.get_participant(pid)
        logger.info("participant_registered", participant_id=participant_id, event_id=event_id)
        return refreshed or participant

    def create_participant(
        self, new_participant: NewParticipant, event_id: str | None = None
    ) -> Participant:
        """Create a participant, registered for `event_id` when one is given.

        The event is looked up before anything is written. If registration
        fails after the participant was created, the participant is removed
        again and the error propagates as a failed creation.

        Raises:
            InvalidEventIdError: If event_id is not a valid UUID.
            EventNotFoundError: If event_id is given and does not exist.
        """
        eid = parse_event_id(event_id) if event_id is not None else None
        if eid is not None and not self._store.events.event_exists(eid):
            raise EventNotFoundError(str(eid))

        with self._store.atomic():
            participant = self._store.participants.create_participant(new_participant)
            if eid is not None:
                try:
                    self.attach(eid, [participant.id])
                except DomainError:
                    self._undo(
                        "create_participant",
                        lambda: self._store.participants.delete_participant(participant.id),
                        participant_id=str(participant.id),
                    )
                    raise
                participant = self._store.participants.get_participant(participant.id) or participant

        logger.info(
            "participant_created",
            participant_id=str(participant.id),
            event_id=str(eid) if eid is not None else None,
        )
        return participant

    def attach(self, event_id: EventId, participant_ids: Sequence[ParticipantId]) -> None:
        """Register freshly created participants for one event in one step.

        The participants must not be registered for the event yet.
        """
        if not participant_ids:
            return
        self._store.registrations.add_many(event_id, participant_ids)
        self._count(event_id, participant_ids)

    def deregister(self, participant_id: str) -> None:
        """Remove a participant and release every registration it holds.

        For each event, in a fixed order, the counter is decremented before the
        registration row is removed; the participant is deleted last. If the
        row cannot be removed the decrement is taken back. An interrupted run
        can be retried: events already handled no longer hold the participant.

        Raises:
            InvalidParticipantIdError: If the participant_id is not a valid UUID.
            ParticipantNotFoundError: If the participant does not exist.
            CounterUnderflowError: If an event counter is already zero.
        """
        pid = parse_participant_id(participant_id)
        with self._store.atomic():
            participant = self._store.participants.get_participant(pid)
            if participant is None:
                raise ParticipantNotFoundError(participant_id)
            for eid in sorted(participant.event_ids):
                decremented = self._store.events.decrement_registered(eid)
                if not decremented:
                    if self._store.events.event_exists(eid):
                        logger.error(
                            "registered_counter_underflow",
                            event_id=str(eid),
                            participant_id=participant_id,
                        )
                        raise CounterUnderflowError(str(eid))
                    logger.warning(
                        "dangling_registration_released",
                        event_id=str(eid),
                        participant_id=participant_id,
                    )
                try:
                    self._store.registrations.remove(eid, pid)
                except StoreUnavailableError:
                    if decremented:
                        self._undo(
                            "restore_registered",
                            lambda: self._store.events.increment_registered(eid, 1),
                            event_id=str(eid),
                            participant_id=participant_id,
                        )
                    raise
            self._store.participants.delete_participant(pid)
        logger.info(
            "participant_deregistered",
            participant_id=participant_id,
            released=len(participant.event_ids),
        )

    def delete_event(self, event_id: str) -> None:
        """Delete an event together with its registrations.

        Registrations go first so that an interrupted deletion can be retried
        against the still existing event. Without transactions, a failure after
        the rows are gone leaves the event with its old counter and no
        registrations; `audit` reports that state until the retry.

        Raises:
            InvalidEventIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
        """
        eid = parse_event_id(event_id)
        with self._store.atomic():
            if not self._store.events.event_exists(eid):
                raise EventNotFoundError(event_id)
            released = self._store.registrations.remove_for_event(eid)
            self._store.events.delete_event(eid)
        logger.info("event_deleted", event_id=event_id, released=released)

    def audit(self, event_id: str) -> LedgerAudit:
        """Compare an event's counter with its registrations. Never repairs.

        Raises:
            InvalidEventIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
        """
        eid = parse_event_id(event_id)
        event = self._store.events.get_event(eid)
        if event is None:
            raise EventNotFoundError(event_id)
        result = LedgerAudit(
            event_id=eid,
            registered=event.registered,
            registrations=self._store.registrations.count_for_event(eid),
            participant_ids=event.participant_ids,
        )
        if not result.is_consistent:
            logger.warning(
                "ledger_out_of_sync",
                event_id=event_id,
                registered=result.registered,
                registrations=result.registrations,
            )
        return result

    def _count(self, event_id: EventId, participant_ids: Sequence[ParticipantId]) -> None:
        """Add just-written registrations to the counter, or take them back."""
        try:
            counted = self._store.events.increment_registered(event_id, len(participant_ids))
        except StoreUnavailableError:
            self._release(event_id, participant_ids)
            raise
        if not counted:
            self._release(event_id, participant_ids)
            raise EventNotFoundError(str(event_id))

    def _release(self, event_id: EventId, participant_ids: Sequence[ParticipantId]) -> None:
        def remove_all() -> None:
            for pid in participant_ids:
                self._store.registrations.remove(event_id, pid)

        self._undo("release_registrations", remove_all, event_id=str(event_id))

    def _undo(self, step: str, action: Callable[[], object], **ids: str) -> None:
        # A transactional store rolls back on its own.
        if self._store.transactional:
            return
        try:
            action()
        except StoreUnavailableError:
            logger.error("ledger_reconciliation_required", step=step, **ids)
