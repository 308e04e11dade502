"""Integration tests for the event endpoints.

Run with: pytest tests/test_event_catalog.py -v
"""

import uuid

import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from events import models
from events.handlers import views
from events.services.registration_ledger import RegistrationLedger
from events.stores.django_store import DjangoEntityStore
from tests.factories import new_event, new_participant


def event_payload(**overrides) -> dict:
    payload = {
        "name": "Spring Hackathon",
        "description": "Two days of hacking",
        "date": "2026-04-18T09:00:00Z",
        "location": "Innovation Lab",
        "capacity": 40,
        "organizer_id": str(uuid.uuid4()),
    }
    payload.update(overrides)
    return payload


@pytest.mark.django_db
class TestEventList:
    """Tests for GET/POST /api/events"""

    def test_create_event(self, api_client: APIClient):
        """Given a valid payload, returns the new event with an empty ledger."""
        response = api_client.post(reverse("event-list"), event_payload(), format="json")

        assert response.status_code == 201
        body = response.json()
        assert body["registered"] == 0
        assert body["participant_ids"] == []
        assert body["status"] == "upcoming"

    def test_create_event_rejects_zero_capacity(self, api_client: APIClient):
        """Given capacity 0, returns 400 naming the field."""
        response = api_client.post(reverse("event-list"), event_payload(capacity=0), format="json")

        assert response.status_code == 400
        assert "capacity" in response.json()

    def test_create_event_requires_organizer(self, api_client: APIClient):
        """Given no organizer_id on create, returns 400."""
        payload = event_payload()
        del payload["organizer_id"]

        response = api_client.post(reverse("event-list"), payload, format="json")

        assert response.status_code == 400

    def test_list_events_by_status(self, api_client: APIClient, django_store: DjangoEntityStore):
        """Given a status filter, returns only matching events."""
        django_store.events.create_event(new_event(name="Open"))
        api_client.post(reverse("event-list"), event_payload(status="cancelled"), format="json")

        response = api_client.get(reverse("event-list"), {"status": "cancelled"})

        assert response.status_code == 200
        assert [e["name"] for e in response.json()] == ["Spring Hackathon"]

    def test_list_events_unknown_status(self, api_client: APIClient):
        """Given an unknown status, returns 400."""
        response = api_client.get(reverse("event-list"), {"status": "postponed"})

        assert response.status_code == 400

    def test_list_events_empty_catalog(self, api_client: APIClient):
        """Given no events, returns empty list."""
        response = api_client.get(reverse("event-list"))

        assert response.status_code == 200
        assert response.json() == []


@pytest.mark.django_db
class TestEventDetail:
    """Tests for GET/PUT/DELETE /api/events/{id}"""

    def test_get_event_returns_details(self, api_client: APIClient, django_store: DjangoEntityStore):
        """Given event exists, returns event details."""
        event = django_store.events.create_event(new_event(capacity=12))

        response = api_client.get(reverse("event-detail", args=[str(event.id)]))

        assert response.status_code == 200
        assert response.json()["capacity"] == 12

    def test_get_event_not_found(self, api_client: APIClient):
        """Given event does not exist, returns 404."""
        response = api_client.get(reverse("event-detail", args=[str(uuid.uuid4())]))

        assert response.status_code == 404
        assert response.json() == {"code": "EVENT_NOT_FOUND", "message": "Event not found"}

    def test_get_event_invalid_id_format(self, api_client: APIClient):
        """Given invalid UUID format, returns 400."""
        response = api_client.get(reverse("event-detail", args=["not-a-uuid"]))

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_EVENT_ID"

    def test_update_event_keeps_ledger(self, api_client: APIClient, django_store: DjangoEntityStore):
        """Given a full update, returns the event with its counter untouched."""
        event = django_store.events.create_event(new_event())
        RegistrationLedger(django_store).create_participant(new_participant(), event_id=str(event.id))

        response = api_client.put(
            reverse("event-detail", args=[str(event.id)]),
            event_payload(capacity=1, status="ongoing"),
            format="json",
        )

        assert response.status_code == 200
        body = response.json()
        assert body["capacity"] == 1
        assert body["status"] == "ongoing"
        assert body["registered"] == 1

    def test_delete_event(self, api_client: APIClient, django_store: DjangoEntityStore):
        """Given a registered participant, deletes the event and its registrations."""
        event = django_store.events.create_event(new_event())
        participant = RegistrationLedger(django_store).create_participant(
            new_participant(), event_id=str(event.id)
        )

        response = api_client.delete(reverse("event-detail", args=[str(event.id)]))

        assert response.status_code == 204
        assert django_store.events.get_event(event.id) is None
        assert django_store.participants.get_participant(participant.id).event_ids == frozenset()


@pytest.mark.django_db
class TestEventParticipants:
    """Tests for GET /api/events/{id}/participants and /audit"""

    def test_attendance_list(self, api_client: APIClient, django_store: DjangoEntityStore):
        """Given registered and unregistered participants, returns only the registered."""
        event = django_store.events.create_event(new_event())
        ledger = RegistrationLedger(django_store)
        attending = ledger.create_participant(new_participant("Ada"), event_id=str(event.id))
        ledger.create_participant(new_participant("Grace"))

        response = api_client.get(reverse("event-participants", args=[str(event.id)]))

        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == [str(attending.id)]

    def test_attendance_list_unknown_event(self, api_client: APIClient):
        """Given event does not exist, returns 404."""
        response = api_client.get(reverse("event-participants", args=[str(uuid.uuid4())]))

        assert response.status_code == 404

    def test_audit(self, api_client: APIClient, django_store: DjangoEntityStore):
        """Given a consistent event, returns matching counter and registrations."""
        event = django_store.events.create_event(new_event())
        RegistrationLedger(django_store).create_participant(new_participant(), event_id=str(event.id))

        response = api_client.get(reverse("event-audit", args=[str(event.id)]))

        assert response.status_code == 200
        assert response.json() == {
            "event_id": str(event.id),
            "registered": 1,
            "registrations": 1,
            "is_consistent": True,
        }


@pytest.mark.django_db
class TestEntityStoreSetting:
    """Tests for settings.ENTITY_STORE"""

    @pytest.fixture
    def memory_backed(self, settings):
        settings.ENTITY_STORE = "memory"
        views._memory_store.cache_clear()
        yield
        views._memory_store.cache_clear()

    def test_memory_store_serves_the_api(self, api_client: APIClient, memory_backed):
        """Given ENTITY_STORE is memory, events live in process memory, not the database."""
        created = api_client.post(reverse("event-list"), event_payload(), format="json")

        response = api_client.get(reverse("event-detail", args=[created.json()["id"]]))

        assert response.status_code == 200
        assert response.json()["name"] == "Spring Hackathon"
        assert not models.Event.objects.exists()

    def test_default_store_is_the_database(self, api_client: APIClient):
        """Given the default setting, events are stored through the ORM."""
        api_client.post(reverse("event-list"), event_payload(), format="json")

        assert models.Event.objects.count() == 1
