from events.handlers.views import (
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

__all__ = [
    "EventListView",
    "EventDetailView",
    "EventParticipantsView",
    "EventAuditView",
    "ParticipantListView",
    "ParticipantDetailView",
    "RegistrationView",
    "CheckInView",
    "BulkImportView",
]
