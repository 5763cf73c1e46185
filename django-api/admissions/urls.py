from django.urls import path

from admissions.handlers import (
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

urlpatterns = [
    path("registrations", RegistrationListView.as_view(), name="registration-list"),
    path(
        "registrations/<str:registration_ref>",
        RegistrationDetailView.as_view(),
        name="registration-detail",
    ),
    path(
        "registrations/<str:registration_id>/cancel",
        RegistrationCancelView.as_view(),
        name="registration-cancel",
    ),
    path("tickets", TicketListView.as_view(), name="ticket-list"),
    path("tickets/scan", TicketScanView.as_view(), name="ticket-scan"),
    path("tickets/validate", TicketValidateView.as_view(), name="ticket-validate"),
    path("tickets/<str:ticket_id>", TicketDetailView.as_view(), name="ticket-detail"),
    path("tickets/<str:ticket_id>/cancel", TicketCancelView.as_view(), name="ticket-cancel"),
    path("tickets/<str:ticket_id>/use", TicketUseView.as_view(), name="ticket-use"),
    path("tickets/<str:ticket_id>/qr", TicketQrView.as_view(), name="ticket-qr"),
    path("events/<str:event_id>", EventDetailView.as_view(), name="event-detail"),
    path("events/<str:event_id>/capacity", EventCapacityView.as_view(), name="event-capacity"),
    path("events/<str:event_id>/cancel", EventCancelView.as_view(), name="event-cancel"),
    path("events/<str:event_id>/waitlist", EventWaitlistView.as_view(), name="event-waitlist"),
    path(
        "events/<str:event_id>/registrations",
        EventRegistrationsView.as_view(),
        name="event-registrations",
    ),
    path("events/<str:event_id>/promote", EventPromoteView.as_view(), name="event-promote"),
    path("events/<str:event_id>/tickets", EventTicketsView.as_view(), name="event-tickets"),
    path(
        "users/<str:user_id>/registrations",
        UserRegistrationsView.as_view(),
        name="user-registrations",
    ),
    path("users/<str:user_id>/tickets", UserTicketsView.as_view(), name="user-tickets"),
]
