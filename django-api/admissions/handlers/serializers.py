"""Serializers for request bodies and for rendering domain models.

Input serializers only check the shape of a request; value rules such as
"quantity is a positive integer" belong to the services, which raise domain
errors with stable codes.
"""

from rest_framework import serializers


class RegistrationCreateSerializer(serializers.Serializer):
    event_id = serializers.CharField()
    quantity = serializers.JSONField(required=False, default=1)


class RegistrationUpdateSerializer(serializers.Serializer):
    quantity = serializers.JSONField()


class TicketCreateSerializer(serializers.Serializer):
    registration_id = serializers.CharField()
    quantity = serializers.JSONField(required=False, default=None)


class TicketScanSerializer(serializers.Serializer):
    code = serializers.CharField()
    scanned_by = serializers.CharField(required=False, allow_blank=True, default="")


class CapacitySerializer(serializers.Serializer):
    capacity = serializers.JSONField()


class EventSerializer(serializers.Serializer):
    """Serializer for Event domain model."""

    id = serializers.CharField(source="id.value")
    organization_id = serializers.CharField(source="organization_id.value")
    title = serializers.CharField()
    starts_at = serializers.DateTimeField()
    ends_at = serializers.DateTimeField()
    capacity = serializers.IntegerField(source="capacity.value")
    status = serializers.CharField(source="status.value")
    registered_user_ids = serializers.SerializerMethodField()
    waitlist = serializers.SerializerMethodField()

    def get_registered_user_ids(self, event) -> list[int]:
        return sorted(user_id.value for user_id in event.registered_user_ids)

    def get_waitlist(self, event) -> list[str]:
        return [str(registration_id) for registration_id in event.waitlist]


class RegistrationSerializer(serializers.Serializer):
    """Serializer for Registration domain model."""

    id = serializers.CharField(source="id.value")
    registration_number = serializers.CharField(source="registration_number.value")
    user_id = serializers.IntegerField(source="user_id.value")
    event_id = serializers.CharField(source="event_id.value")
    quantity = serializers.IntegerField(source="quantity.value")
    status = serializers.CharField(source="status.value")
    tickets_issued = serializers.IntegerField()
    ticket_ids = serializers.SerializerMethodField()
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()

    def get_ticket_ids(self, registration) -> list[str]:
        return [str(ticket_id) for ticket_id in registration.ticket_ids]


class TicketSerializer(serializers.Serializer):
    """Serializer for Ticket domain model."""

    id = serializers.CharField(source="id.value")
    code = serializers.CharField(source="code.value")
    registration_id = serializers.CharField(source="registration_id.value")
    event_id = serializers.CharField(source="event_id.value")
    user_id = serializers.IntegerField(source="user_id.value")
    status = serializers.CharField(source="status.value")
    sequence = serializers.IntegerField()
    qr_data_url = serializers.CharField(allow_null=True)
    qr_expires_at = serializers.DateTimeField(allow_null=True)
    scanned_at = serializers.DateTimeField(allow_null=True)
    scanned_by = serializers.CharField()
    created_at = serializers.DateTimeField()


class WaitlistSlotSerializer(serializers.Serializer):
    registration_id = serializers.CharField(source="registration_id.value")
    user_id = serializers.IntegerField(source="user_id.value")
    quantity = serializers.IntegerField()


class PromotionSerializer(serializers.Serializer):
    registration_id = serializers.CharField(source="registration_id.value")
    user_id = serializers.IntegerField(source="user_id.value")
    quantity = serializers.IntegerField()


class QuantityChangeSerializer(serializers.Serializer):
    registration = RegistrationSerializer()
    deleted_tickets = serializers.IntegerField()
    event_capacity = serializers.IntegerField()


class CancellationSerializer(serializers.Serializer):
    registration = RegistrationSerializer()
    deleted_tickets = serializers.IntegerField()
    released_seats = serializers.IntegerField()


class EventRemovalSerializer(serializers.Serializer):
    event_id = serializers.CharField(source="event_id.value")
    registrations = serializers.IntegerField()
    tickets = serializers.IntegerField()
