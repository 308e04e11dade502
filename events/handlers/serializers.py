"""Serializers for request validation and for rendering domain models."""

from rest_framework import serializers

from events.domain import Capacity, EventStatus, NewEvent, NewParticipant

STATUS_CHOICES = [status.value for status in EventStatus]


class EventSerializer(serializers.Serializer):
    """Serializer for Event domain model."""

    id = serializers.SerializerMethodField()
    name = serializers.CharField()
    description = serializers.CharField()
    date = serializers.DateTimeField()
    location = serializers.CharField()
    capacity = serializers.SerializerMethodField()
    registered = serializers.IntegerField()
    organizer_id = serializers.UUIDField()
    status = serializers.SerializerMethodField()
    participant_ids = serializers.SerializerMethodField()
    created_at = serializers.DateTimeField()

    def get_id(self, event) -> str:
        return str(event.id)

    def get_capacity(self, event) -> int:
        return event.capacity.value

    def get_status(self, event) -> str:
        return event.status.value

    def get_participant_ids(self, event) -> list[str]:
        return sorted(str(pid) for pid in event.participant_ids)


class ParticipantSerializer(serializers.Serializer):
    """Serializer for Participant domain model."""

    id = serializers.SerializerMethodField()
    name = serializers.CharField()
    email = serializers.EmailField()
    phone = serializers.CharField()
    checked_in = serializers.BooleanField()
    check_in_time = serializers.DateTimeField(allow_null=True)
    event_ids = serializers.SerializerMethodField()
    created_at = serializers.DateTimeField()

    def get_id(self, participant) -> str:
        return str(participant.id)

    def get_event_ids(self, participant) -> list[str]:
        return sorted(str(eid) for eid in participant.event_ids)


class LedgerAuditSerializer(serializers.Serializer):
    event_id = serializers.SerializerMethodField()
    registered = serializers.IntegerField()
    registrations = serializers.IntegerField()
    is_consistent = serializers.BooleanField()

    def get_event_id(self, audit) -> str:
        return str(audit.event_id)


class EventInputSerializer(serializers.Serializer):
    """Validates the body of event create and update requests."""

    name = serializers.CharField(max_length=255)
    description = serializers.CharField()
    date = serializers.DateTimeField()
    location = serializers.CharField(max_length=255)
    capacity = serializers.IntegerField(min_value=1)
    organizer_id = serializers.UUIDField(required=False)
    status = serializers.ChoiceField(choices=STATUS_CHOICES, required=False)

    def to_changes(self) -> dict:
        changes = {k: v for k, v in self.validated_data.items() if k != "organizer_id"}
        if "capacity" in changes:
            changes["capacity"] = Capacity(changes["capacity"])
        if "status" in changes:
            changes["status"] = EventStatus(changes["status"])
        return changes

    def to_new_event(self) -> NewEvent:
        data = self.validated_data
        return NewEvent(
            name=data["name"],
            description=data["description"],
            date=data["date"],
            location=data["location"],
            capacity=Capacity(data["capacity"]),
            organizer_id=data["organizer_id"],
            status=EventStatus(data.get("status", EventStatus.UPCOMING.value)),
        )

    def validate(self, attrs):
        if self.context.get("creating") and "organizer_id" not in attrs:
            raise serializers.ValidationError({"organizer_id": "This field is required."})
        return attrs


class ParticipantInputSerializer(serializers.Serializer):
    """Validates participant contact fields. Email is stored lower-cased."""

    name = serializers.CharField(max_length=255)
    email = serializers.EmailField(max_length=255)
    phone = serializers.CharField(max_length=32)

    def validate_email(self, value: str) -> str:
        return value.lower()

    def to_new_participant(self) -> NewParticipant:
        data = self.validated_data
        return NewParticipant(name=data["name"], email=data["email"], phone=data["phone"])


class ParticipantCreateSerializer(ParticipantInputSerializer):
    event_id = serializers.CharField(required=False, allow_null=True)


class EventReferenceSerializer(serializers.Serializer):
    event_id = serializers.CharField()


class BulkImportSerializer(serializers.Serializer):
    event_id = serializers.CharField()
    participants = ParticipantInputSerializer(many=True, allow_empty=False)

    def to_records(self) -> list[NewParticipant]:
        return [
            NewParticipant(name=p["name"], email=p["email"], phone=p["phone"])
            for p in self.validated_data["participants"]
        ]


class FailedRecordSerializer(serializers.Serializer):
    index = serializers.IntegerField()
    name = serializers.CharField(source="record.name")
    email = serializers.EmailField(source="record.email")
    reason = serializers.CharField()
