"""Django ORM implementation of the entity store.

Counter changes are issued as single UPDATE statements with F() expressions so
concurrent requests cannot lose increments. Guarded writes (decrement above
zero, first check-in) use the row count of a filtered UPDATE.
"""

import functools
from collections.abc import Callable, Mapping, Sequence
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, ParamSpec, TypeVar

import structlog
from django.db import DatabaseError, transaction
from django.db.models import F, Q

from events import models
from events.domain import (
    BulkInsertResult,
    Capacity,
    Event,
    EventId,
    EventStatus,
    FailedRecord,
    NewEvent,
    NewParticipant,
    Participant,
    ParticipantId,
)
from events.domain.errors import StoreUnavailableError
from events.stores.interfaces import (
    EntityStore,
    EventStore,
    ParticipantStore,
    RegistrationStore,
)

logger = structlog.get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def translate_database_errors(func: Callable[P, R]) -> Callable[P, R]:
    """Re-raise database failures as StoreUnavailableError."""

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return func(*args, **kwargs)
        except DatabaseError as exc:
            logger.error("store_unavailable", operation=func.__qualname__, error=str(exc))
            raise StoreUnavailableError(detail=str(exc)) from exc

    return wrapper


def _to_event(row: models.Event, participant_ids: frozenset[ParticipantId] | None = None) -> Event:
    if participant_ids is None:
        participant_ids = frozenset(ParticipantId(r.participant_id) for r in row.registrations.all())
    return Event(
        id=EventId(row.id),
        name=row.name,
        description=row.description,
        date=row.date,
        location=row.location,
        capacity=Capacity(row.capacity),
        registered=row.registered,
        organizer_id=row.organizer_id,
        status=EventStatus(row.status),
        created_at=row.created_at,
        participant_ids=participant_ids,
    )


def _to_participant(row: models.Participant, event_ids: frozenset[EventId] | None = None) -> Participant:
    if event_ids is None:
        event_ids = frozenset(EventId(r.event_id) for r in row.registrations.all())
    return Participant(
        id=ParticipantId(row.id),
        name=row.name,
        email=row.email,
        phone=row.phone,
        checked_in=row.checked_in,
        check_in_time=row.check_in_time,
        created_at=row.created_at,
        event_ids=event_ids,
    )


def _event_values(changes: Mapping[str, Any]) -> dict[str, Any]:
    values = dict(changes)
    if isinstance(values.get("capacity"), Capacity):
        values["capacity"] = values["capacity"].value
    if isinstance(values.get("status"), EventStatus):
        values["status"] = values["status"].value
    return values


class DjangoEventStore(EventStore):
    """Event store using Django ORM."""

    def _queryset(self):
        return models.Event.objects.prefetch_related("registrations")

    @translate_database_errors
    def list_events(self, status: EventStatus | None = None) -> list[Event]:
        qs = self._queryset()
        if status is not None:
            qs = qs.filter(status=status.value)
        return [_to_event(row) for row in qs]

    @translate_database_errors
    def get_event(self, event_id: EventId) -> Event | None:
        row = self._queryset().filter(pk=event_id.value).first()
        return _to_event(row) if row is not None else None

    @translate_database_errors
    def event_exists(self, event_id: EventId) -> bool:
        return models.Event.objects.filter(pk=event_id.value).exists()

    @translate_database_errors
    def create_event(self, new_event: NewEvent) -> Event:
        row = models.Event.objects.create(
            name=new_event.name,
            description=new_event.description,
            date=new_event.date,
            location=new_event.location,
            capacity=new_event.capacity.value,
            organizer_id=new_event.organizer_id,
            status=new_event.status.value,
        )
        return _to_event(row, participant_ids=frozenset())

    @translate_database_errors
    def update_event(self, event_id: EventId, changes: Mapping[str, Any]) -> Event | None:
        if changes:
            updated = models.Event.objects.filter(pk=event_id.value).update(**_event_values(changes))
            if not updated:
                return None
        return self.get_event(event_id)

    @translate_database_errors
    def delete_event(self, event_id: EventId) -> bool:
        deleted, _ = models.Event.objects.filter(pk=event_id.value).delete()
        return deleted > 0

    @translate_database_errors
    def increment_registered(self, event_id: EventId, by: int) -> bool:
        updated = models.Event.objects.filter(pk=event_id.value).update(
            registered=F("registered") + by
        )
        return updated > 0

    @translate_database_errors
    def decrement_registered(self, event_id: EventId) -> bool:
        updated = models.Event.objects.filter(pk=event_id.value, registered__gt=0).update(
            registered=F("registered") - 1
        )
        return updated > 0


class DjangoParticipantStore(ParticipantStore):
    """Participant store using Django ORM."""

    def _queryset(self):
        return models.Participant.objects.prefetch_related("registrations")

    @translate_database_errors
    def list_participants(
        self, event_id: EventId | None = None, search: str | None = None
    ) -> list[Participant]:
        qs = self._queryset()
        if event_id is not None:
            qs = qs.filter(registrations__event_id=event_id.value)
        if search:
            qs = qs.filter(
                Q(name__icontains=search) | Q(email__icontains=search) | Q(phone__icontains=search)
            )
        return [_to_participant(row) for row in qs]

    @translate_database_errors
    def get_participant(self, participant_id: ParticipantId) -> Participant | None:
        row = self._queryset().filter(pk=participant_id.value).first()
        return _to_participant(row) if row is not None else None

    @translate_database_errors
    def create_participant(self, new_participant: NewParticipant) -> Participant:
        row = models.Participant.objects.create(
            name=new_participant.name,
            email=new_participant.email,
            phone=new_participant.phone,
        )
        return _to_participant(row, event_ids=frozenset())

    @translate_database_errors
    def update_participant(
        self, participant_id: ParticipantId, changes: Mapping[str, Any]
    ) -> Participant | None:
        if changes:
            updated = models.Participant.objects.filter(pk=participant_id.value).update(**changes)
            if not updated:
                return None
        return self.get_participant(participant_id)

    @translate_database_errors
    def delete_participant(self, participant_id: ParticipantId) -> bool:
        deleted, _ = models.Participant.objects.filter(pk=participant_id.value).delete()
        return deleted > 0

    def bulk_create_participants(self, records: Sequence[NewParticipant]) -> BulkInsertResult:
        # One savepoint per record, so a failed insert leaves earlier ones intact
        # and the result says exactly which rows exist.
        created: list[Participant] = []
        for index, record in enumerate(records):
            try:
                with transaction.atomic():
                    row = models.Participant.objects.create(
                        name=record.name, email=record.email, phone=record.phone
                    )
            except DatabaseError as exc:
                logger.warning(
                    "participant_bulk_insert_stopped",
                    index=index,
                    created=len(created),
                    remaining=len(records) - index,
                    error=str(exc),
                )
                failed = [FailedRecord(index=index, record=record, reason="insert failed")]
                failed.extend(
                    FailedRecord(index=i, record=r, reason="not attempted")
                    for i, r in enumerate(records[index + 1 :], start=index + 1)
                )
                return BulkInsertResult(created=tuple(created), failed=tuple(failed))
            created.append(_to_participant(row, event_ids=frozenset()))
        return BulkInsertResult(created=tuple(created))

    @translate_database_errors
    def mark_checked_in(self, participant_id: ParticipantId, at: datetime) -> Participant | None:
        updated = models.Participant.objects.filter(
            pk=participant_id.value, checked_in=False
        ).update(checked_in=True, check_in_time=at)
        if not updated:
            return None
        return self.get_participant(participant_id)


class DjangoRegistrationStore(RegistrationStore):
    """Registration store using Django ORM."""

    @translate_database_errors
    def add(self, event_id: EventId, participant_id: ParticipantId) -> bool:
        _, created = models.Registration.objects.get_or_create(
            event_id=event_id.value, participant_id=participant_id.value
        )
        return created

    @translate_database_errors
    def add_many(self, event_id: EventId, participant_ids: Sequence[ParticipantId]) -> None:
        models.Registration.objects.bulk_create(
            [
                models.Registration(event_id=event_id.value, participant_id=pid.value)
                for pid in participant_ids
            ]
        )

    @translate_database_errors
    def remove(self, event_id: EventId, participant_id: ParticipantId) -> bool:
        deleted, _ = models.Registration.objects.filter(
            event_id=event_id.value, participant_id=participant_id.value
        ).delete()
        return deleted > 0

    @translate_database_errors
    def remove_for_event(self, event_id: EventId) -> int:
        deleted, _ = models.Registration.objects.filter(event_id=event_id.value).delete()
        return deleted

    @translate_database_errors
    def count_for_event(self, event_id: EventId) -> int:
        return models.Registration.objects.filter(event_id=event_id.value).count()


class DjangoEntityStore(EntityStore):
    """Database-backed entity store. Units of work are database transactions."""

    transactional = True

    def __init__(self) -> None:
        self.events = DjangoEventStore()
        self.participants = DjangoParticipantStore()
        self.registrations = DjangoRegistrationStore()

    def atomic(self) -> AbstractContextManager[None]:
        return transaction.atomic()
