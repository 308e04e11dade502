"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

import functools

from django.conf import settings
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from events.domain import EventStatus
from events.domain.errors import (
    ConsistencyFault,
    DomainError,
    InvalidEventIdError,
    InvalidParticipantIdError,
    InvalidStateError,
    NotFoundError,
    PartialImportError,
    StoreUnavailableError,
)
from events.handlers.serializers import (
    BulkImportSerializer,
    EventInputSerializer,
    EventReferenceSerializer,
    EventSerializer,
    FailedRecordSerializer,
    LedgerAuditSerializer,
    ParticipantCreateSerializer,
    ParticipantInputSerializer,
    ParticipantSerializer,
)
from events.services.bulk_import import BulkImportService
from events.services.check_in import CheckInService
from events.services.event_service import EventService
from events.services.participant_service import ParticipantService
from events.services.registration_ledger import RegistrationLedger
from events.stores.django_store import DjangoEntityStore
from events.stores.interfaces import EntityStore
from events.stores.memory_store import InMemoryEntityStore


@functools.cache
def _memory_store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


def get_store() -> EntityStore:
    """Return the entity store selected by settings.ENTITY_STORE."""
    if settings.ENTITY_STORE == "memory":
        return _memory_store()
    return DjangoEntityStore()


def error_response(error: DomainError) -> Response:
    """Map a domain error to a response with a user-safe body."""
    body = {"code": error.code.value, "message": error.message}
    if isinstance(error, (InvalidEventIdError, InvalidParticipantIdError)):
        return Response(body, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(error, NotFoundError):
        return Response(body, status=status.HTTP_404_NOT_FOUND)
    if isinstance(error, PartialImportError):
        body["created"] = ParticipantSerializer(error.created, many=True).data
        body["failed"] = FailedRecordSerializer(error.failed, many=True).data
        return Response(body, status=status.HTTP_409_CONFLICT)
    if isinstance(error, (InvalidStateError, ConsistencyFault)):
        return Response(body, status=status.HTTP_409_CONFLICT)
    if isinstance(error, StoreUnavailableError):
        return Response(body, status=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(body, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


class EventListView(APIView):
    """Handler for GET/POST /api/events"""

    def get(self, request: Request) -> Response:
        raw_status = request.query_params.get("status")
        try:
            event_status = EventStatus(raw_status) if raw_status else None
        except ValueError:
            return Response({"status": ["Unknown status."]}, status=status.HTTP_400_BAD_REQUEST)
        try:
            events = EventService(get_store()).list_events(status=event_status)
        except DomainError as error:
            return error_response(error)
        return Response(EventSerializer(events, many=True).data)

    def post(self, request: Request) -> Response:
        serializer = EventInputSerializer(data=request.data, context={"creating": True})
        serializer.is_valid(raise_exception=True)
        try:
            event = EventService(get_store()).create_event(serializer.to_new_event())
        except DomainError as error:
            return error_response(error)
        return Response(EventSerializer(event).data, status=status.HTTP_201_CREATED)


class EventDetailView(APIView):
    """Handler for GET/PUT/DELETE /api/events/{event_id}"""

    def get(self, request: Request, event_id: str) -> Response:
        try:
            event = EventService(get_store()).get_event(event_id)
        except DomainError as error:
            return error_response(error)
        return Response(EventSerializer(event).data)

    def put(self, request: Request, event_id: str) -> Response:
        serializer = EventInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            event = EventService(get_store()).update_event(event_id, serializer.to_changes())
        except DomainError as error:
            return error_response(error)
        return Response(EventSerializer(event).data)

    def delete(self, request: Request, event_id: str) -> Response:
        try:
            RegistrationLedger(get_store()).delete_event(event_id)
        except DomainError as error:
            return error_response(error)
        return Response(status=status.HTTP_204_NO_CONTENT)


class EventParticipantsView(APIView):
    """Handler for GET /api/events/{event_id}/participants"""

    def get(self, request: Request, event_id: str) -> Response:
        store = get_store()
        try:
            EventService(store).get_event(event_id)
            participants = ParticipantService(store).list_participants(event_id=event_id)
        except DomainError as error:
            return error_response(error)
        return Response(ParticipantSerializer(participants, many=True).data)


class EventAuditView(APIView):
    """Handler for GET /api/events/{event_id}/audit"""

    def get(self, request: Request, event_id: str) -> Response:
        try:
            audit = RegistrationLedger(get_store()).audit(event_id)
        except DomainError as error:
            return error_response(error)
        return Response(LedgerAuditSerializer(audit).data)


class ParticipantListView(APIView):
    """Handler for GET/POST /api/participants"""

    def get(self, request: Request) -> Response:
        try:
            participants = ParticipantService(get_store()).list_participants(
                event_id=request.query_params.get("event_id") or None,
                search=request.query_params.get("search") or None,
            )
        except DomainError as error:
            return error_response(error)
        return Response(ParticipantSerializer(participants, many=True).data)

    def post(self, request: Request) -> Response:
        serializer = ParticipantCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            participant = RegistrationLedger(get_store()).create_participant(
                serializer.to_new_participant(),
                event_id=serializer.validated_data.get("event_id") or None,
            )
        except DomainError as error:
            return error_response(error)
        return Response(ParticipantSerializer(participant).data, status=status.HTTP_201_CREATED)


class ParticipantDetailView(APIView):
    """Handler for GET/PUT/DELETE /api/participants/{participant_id}"""

    def get(self, request: Request, participant_id: str) -> Response:
        try:
            participant = ParticipantService(get_store()).get_participant(participant_id)
        except DomainError as error:
            return error_response(error)
        return Response(ParticipantSerializer(participant).data)

    def put(self, request: Request, participant_id: str) -> Response:
        serializer = ParticipantInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            participant = ParticipantService(get_store()).update_participant(
                participant_id, serializer.validated_data
            )
        except DomainError as error:
            return error_response(error)
        return Response(ParticipantSerializer(participant).data)

    def delete(self, request: Request, participant_id: str) -> Response:
        try:
            RegistrationLedger(get_store()).deregister(participant_id)
        except DomainError as error:
            return error_response(error)
        return Response(status=status.HTTP_204_NO_CONTENT)


class RegistrationView(APIView):
    """Handler for POST /api/participants/{participant_id}/registrations"""

    def post(self, request: Request, participant_id: str) -> Response:
        serializer = EventReferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            participant = RegistrationLedger(get_store()).register(
                serializer.validated_data["event_id"], participant_id
            )
        except DomainError as error:
            return error_response(error)
        return Response(ParticipantSerializer(participant).data, status=status.HTTP_201_CREATED)


class CheckInView(APIView):
    """Handler for POST /api/participants/{participant_id}/check-in"""

    def post(self, request: Request, participant_id: str) -> Response:
        serializer = EventReferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            participant = CheckInService(get_store()).check_in(
                participant_id, serializer.validated_data["event_id"]
            )
        except DomainError as error:
            return error_response(error)
        return Response(ParticipantSerializer(participant).data)


class BulkImportView(APIView):
    """Handler for POST /api/participants/bulk-import"""

    def post(self, request: Request) -> Response:
        serializer = BulkImportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            participants = BulkImportService(get_store()).bulk_import(
                serializer.validated_data["event_id"], serializer.to_records()
            )
        except DomainError as error:
            return error_response(error)
        return Response(
            ParticipantSerializer(participants, many=True).data, status=status.HTTP_201_CREATED
        )
