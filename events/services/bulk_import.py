"""Bulk import of participants into one event.

The import spans the participant rows and the event's registrations. It runs
in two steps inside one unit of work:

1. insert the records in order; the store reports which ones were created
2. register exactly the created subset for the event and bump its counter once

A partially successful first step still registers what was created and then
raises PartialImportError naming the records that were not. When the second
step fails, the created participants are removed again (by rollback or, for a
store without transactions, by deleting them).
"""

from collections.abc import Sequence
from dataclasses import replace

import structlog

from events.domain import EventId, NewParticipant, Participant, ParticipantId
from events.domain.errors import (
    DomainError,
    EventNotFoundError,
    PartialImportError,
    StoreUnavailableError,
)
from events.services.identifiers import parse_event_id
from events.services.registration_ledger import RegistrationLedger
from events.stores.interfaces import EntityStore

logger = structlog.get_logger(__name__)


class BulkImportService:
    """Service for importing many new participants into one event."""

    def __init__(self, store: EntityStore) -> None:
        self._store = store
        self._ledger = RegistrationLedger(store)

    def bulk_import(self, event_id: str, records: Sequence[NewParticipant]) -> list[Participant]:
        """Create participants for an event and register them.

        Returns the created participants in input order.

        Raises:
            InvalidEventIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist. Nothing is inserted.
            StoreUnavailableError: If no record could be inserted, or registering
                the created participants failed. Nothing is left behind.
            PartialImportError: If only a prefix of the records was created. The
                created ones are registered; the error lists the rest.
        """
        eid = parse_event_id(event_id)
        if not self._store.events.event_exists(eid):
            raise EventNotFoundError(event_id)
        if not records:
            return []

        with self._store.atomic():
            result = self._store.participants.bulk_create_participants(records)
            created_ids = [p.id for p in result.created]
            try:
                self._ledger.attach(eid, created_ids)
            except DomainError:
                self._discard(eid, created_ids)
                raise

        if not result.created:
            logger.warning("bulk_import_failed", event_id=event_id, requested=len(records))
            raise StoreUnavailableError(detail="no participants were imported")

        created = [replace(p, event_ids=p.event_ids | {eid}) for p in result.created]
        if not result.is_complete:
            logger.warning(
                "bulk_import_partial",
                event_id=event_id,
                imported=len(created),
                failed_indices=[f.index for f in result.failed],
            )
            raise PartialImportError(event_id, created, result.failed)

        logger.info("bulk_import_completed", event_id=event_id, imported=len(created))
        return created

    def _discard(self, event_id: EventId, participant_ids: Sequence[ParticipantId]) -> None:
        # A transactional store rolls back on its own.
        if self._store.transactional:
            return
        orphaned = []
        for pid in participant_ids:
            try:
                self._store.participants.delete_participant(pid)
            except StoreUnavailableError:
                orphaned.append(str(pid))
        if orphaned:
            logger.error(
                "ledger_reconciliation_required",
                step="bulk_import",
                event_id=str(event_id),
                participant_ids=orphaned,
            )
