from admissions.handlers.views import (
    EventCancelView,
    EventCapacityView,
    EventDetailView,
    EventPromoteView,
    EventRegistrationsView,
    EventTicketsView,
    EventWaitlistView,
    RegistrationCancelView,
    RegistrationDetailView,
    RegistrationListView,
    TicketCancelView,
    TicketDetailView,
    TicketListView,
    TicketQrView,
    TicketScanView,
    TicketUseView,
    TicketValidateView,
    UserRegistrationsView,
    UserTicketsView,
)

__all__ = [
    "EventCancelView",
    "EventCapacityView",
    "EventDetailView",
    "EventPromoteView",
    "EventRegistrationsView",
    "EventTicketsView",
    "EventWaitlistView",
    "RegistrationCancelView",
    "RegistrationDetailView",
    "RegistrationListView",
    "TicketCancelView",
    "TicketDetailView",
    "TicketListView",
    "TicketQrView",
    "TicketScanView",
    "TicketUseView",
    "TicketValidateView",
    "UserRegistrationsView",
    "UserTicketsView",
]
