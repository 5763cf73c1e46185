"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from admissions.domain.errors import DomainError, ErrorKind, InvalidRequestError
from admissions.domain.models import Actor
from admissions.handlers.errors import (
    domain_error_response,
    error_body,
    internal_error_response,
)
from admissions.handlers.serializers import (
    CancellationSerializer,
    CapacitySerializer,
    EventRemovalSerializer,
    EventSerializer,
    PromotionSerializer,
    QuantityChangeSerializer,
    RegistrationCreateSerializer,
    RegistrationSerializer,
    RegistrationUpdateSerializer,
    TicketCreateSerializer,
    TicketScanSerializer,
    TicketSerializer,
    WaitlistSlotSerializer,
)
from admissions.services.factory import AdmissionServices, build_services

logger = logging.getLogger(__name__)


class AdmissionsView(APIView):
    """Base handler: builds services per request and renders errors as {code, message}."""

    _services: AdmissionServices | None = None

    @property
    def services(self) -> AdmissionServices:
        if self._services is None:
            self._services = build_services()
        return self._services

    def actor(self, request: Request) -> Actor:
        return self.services.identity.resolve(request.user)

    def parse(self, serializer_class, request: Request) -> dict:
        serializer = serializer_class(data=request.data)
        if not serializer.is_valid():
            raise InvalidRequestError(serializer.errors)
        return serializer.validated_data

    def handle_exception(self, exc: Exception) -> Response:
        if isinstance(exc, DomainError):
            if exc.kind is ErrorKind.INTERNAL:
                logger.error("%s failed: %s", type(self).__name__, exc)
            return domain_error_response(exc)
        if isinstance(exc, APIException):
            response = super().handle_exception(exc)
            response.data = error_body(str(exc.default_code).upper(), str(exc.detail))
            return response
        logger.exception("Unhandled error in %s", type(self).__name__)
        return internal_error_response()


class RegistrationListView(AdmissionsView):
    """Handler for POST /api/registrations"""

    def post(self, request: Request) -> Response:
        data = self.parse(RegistrationCreateSerializer, request)
        registration = self.services.registrations.register(
            self.actor(request), data["event_id"], data["quantity"]
        )
        return Response(RegistrationSerializer(registration).data, status=status.HTTP_201_CREATED)


class RegistrationDetailView(AdmissionsView):
    """Handler for GET, PATCH and DELETE /api/registrations/{registration_ref}"""

    def get(self, request: Request, registration_ref: str) -> Response:
        registration = self.services.registrations.get_registration(
            self.actor(request), registration_ref
        )
        return Response(RegistrationSerializer(registration).data)

    def patch(self, request: Request, registration_ref: str) -> Response:
        data = self.parse(RegistrationUpdateSerializer, request)
        change = self.services.registrations.update_quantity(
            self.actor(request), registration_ref, data["quantity"]
        )
        return Response(QuantityChangeSerializer(change).data)

    def delete(self, request: Request, registration_ref: str) -> Response:
        removal = self.services.registrations.delete(self.actor(request), registration_ref)
        return Response(CancellationSerializer(removal).data)


class RegistrationCancelView(AdmissionsView):
    """Handler for POST /api/registrations/{registration_id}/cancel"""

    def post(self, request: Request, registration_id: str) -> Response:
        cancellation = self.services.registrations.cancel(self.actor(request), registration_id)
        return Response(CancellationSerializer(cancellation).data)


class UserRegistrationsView(AdmissionsView):
    """Handler for GET /api/users/{user_id}/registrations"""

    def get(self, request: Request, user_id: str) -> Response:
        registrations = self.services.registrations.list_for_user(self.actor(request), user_id)
        return Response(RegistrationSerializer(registrations, many=True).data)


class TicketListView(AdmissionsView):
    """Handler for POST /api/tickets"""

    def post(self, request: Request) -> Response:
        data = self.parse(TicketCreateSerializer, request)
        tickets = self.services.tickets.create_tickets(
            self.actor(request), data["registration_id"], data["quantity"]
        )
        return Response(TicketSerializer(tickets, many=True).data, status=status.HTTP_201_CREATED)


class UserTicketsView(AdmissionsView):
    def get(self, request: Request, user_id: str) -> Response:
        tickets = self.services.tickets.list_for_user(self.actor(request), user_id)
        return Response(TicketSerializer(tickets, many=True).data)


class TicketValidateView(AdmissionsView):
    """Handler for GET /api/tickets/validate?code=..."""

    def get(self, request: Request) -> Response:
        ticket = self.services.tickets.validate(
            self.actor(request), request.query_params.get("code")
        )
        return Response({"valid": True, "ticket": TicketSerializer(ticket).data})


class TicketDetailView(AdmissionsView):
    """Handler for GET /api/tickets/{ticket_id}"""

    def get(self, request: Request, ticket_id: str) -> Response:
        ticket = self.services.tickets.get_ticket(self.actor(request), ticket_id)
        return Response(TicketSerializer(ticket).data)


class TicketCancelView(AdmissionsView):
    def post(self, request: Request, ticket_id: str) -> Response:
        ticket = self.services.tickets.cancel_ticket(self.actor(request), ticket_id)
        return Response(TicketSerializer(ticket).data)


class TicketUseView(AdmissionsView):
    def post(self, request: Request, ticket_id: str) -> Response:
        ticket = self.services.tickets.mark_used(self.actor(request), ticket_id)
        return Response(TicketSerializer(ticket).data)


class TicketQrView(AdmissionsView):
    def post(self, request: Request, ticket_id: str) -> Response:
        ticket = self.services.tickets.regenerate_qr(self.actor(request), ticket_id)
        return Response(TicketSerializer(ticket).data)


class TicketScanView(AdmissionsView):
    """Handler for POST /api/tickets/scan"""

    def post(self, request: Request) -> Response:
        data = self.parse(TicketScanSerializer, request)
        ticket = self.services.tickets.scan(
            self.actor(request), data["code"], data["scanned_by"] or None
        )
        return Response(TicketSerializer(ticket).data)


class EventDetailView(AdmissionsView):
    """Handler for GET and DELETE /api/events/{event_id}"""

    def get(self, request: Request, event_id: str) -> Response:
        event = self.services.events.get_event(event_id)
        return Response(EventSerializer(event).data)

    def delete(self, request: Request, event_id: str) -> Response:
        removal = self.services.events.delete_event(self.actor(request), event_id)
        return Response(EventRemovalSerializer(removal).data)


class EventCapacityView(AdmissionsView):
    def patch(self, request: Request, event_id: str) -> Response:
        data = self.parse(CapacitySerializer, request)
        event = self.services.events.adjust_capacity(
            self.actor(request), event_id, data["capacity"]
        )
        return Response(EventSerializer(event).data)


class EventCancelView(AdmissionsView):
    def post(self, request: Request, event_id: str) -> Response:
        event = self.services.events.cancel_event(self.actor(request), event_id)
        return Response(EventSerializer(event).data)


class EventWaitlistView(AdmissionsView):
    def get(self, request: Request, event_id: str) -> Response:
        slots = self.services.events.get_waitlist(self.actor(request), event_id)
        return Response(WaitlistSlotSerializer(slots, many=True).data)


class EventRegistrationsView(AdmissionsView):
    def get(self, request: Request, event_id: str) -> Response:
        registrations = self.services.events.list_registrations(self.actor(request), event_id)
        return Response(RegistrationSerializer(registrations, many=True).data)


class EventTicketsView(AdmissionsView):
    def get(self, request: Request, event_id: str) -> Response:
        tickets = self.services.tickets.list_for_event(self.actor(request), event_id)
        return Response(TicketSerializer(tickets, many=True).data)


class EventPromoteView(AdmissionsView):
    """Handler for POST /api/events/{event_id}/promote"""

    def post(self, request: Request, event_id: str) -> Response:
        promotions = self.services.promotions.promote_waitlist(self.actor(request), event_id)
        return Response({"promoted": PromotionSerializer(promotions, many=True).data})
