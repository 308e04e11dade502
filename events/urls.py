from django.urls import path

from events.handlers import (
    BulkImportView,
    CheckInView,
    EventAuditView,
    EventDetailView,
    EventListView,
    EventParticipantsView,
    ParticipantDetailView,
    ParticipantListView,
    RegistrationView,
)

urlpatterns = [
    path("events", EventListView.as_view(), name="event-list"),
    path("events/<str:event_id>", EventDetailView.as_view(), name="event-detail"),
    path(
        "events/<str:event_id>/participants",
        EventParticipantsView.as_view(),
        name="event-participants",
    ),
    path("events/<str:event_id>/audit", EventAuditView.as_view(), name="event-audit"),
    path("participants", ParticipantListView.as_view(), name="participant-list"),
    path("participants/bulk-import", BulkImportView.as_view(), name="participant-bulk-import"),
    path(
        "participants/<str:participant_id>",
        ParticipantDetailView.as_view(),
        name="participant-detail",
    ),
    path(
        "participants/<str:participant_id>/registrations",
        RegistrationView.as_view(),
        name="participant-registrations",
    ),
    path(
        "participants/<str:participant_id>/check-in",
        CheckInView.as_view(),
        name="participant-check-in",
    ),
]
