from django.contrib import admin

from admissions.models import (
    Event,
    FollowUpTask,
    Organization,
    Registration,
    Ticket,
    WaitlistEntry,
)


class WaitlistEntryInline(admin.TabularInline):
    model = WaitlistEntry
    extra = 0
    readonly_fields = ["registration", "position", "created_at"]
    can_delete = False


class TicketInline(admin.TabularInline):
    model = Ticket
    extra = 0
    fields = ["code", "sequence", "status", "scanned_at", "scanned_by"]
    readonly_fields = fields
    can_delete = False


class ReadOnlyLedgerMixin:
    """Capacity, status and tickets change only through the admissions services."""

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ["name", "status", "created_at"]
    list_filter = ["status"]
    search_fields = ["name"]
    filter_horizontal = ["owners"]


@admin.register(Event)
class EventAdmin(ReadOnlyLedgerMixin, admin.ModelAdmin):
    list_display = ["title", "organization", "starts_at", "capacity", "status"]
    list_filter = ["status", "organization"]
    search_fields = ["title"]
    readonly_fields = ["capacity", "status", "registered_users"]
    inlines = [WaitlistEntryInline]


@admin.register(Registration)
class RegistrationAdmin(ReadOnlyLedgerMixin, admin.ModelAdmin):
    list_display = ["registration_number", "user", "event", "quantity", "status", "tickets_issued"]
    list_filter = ["status", "event"]
    search_fields = ["registration_number", "user__username", "user__email"]
    readonly_fields = ["registration_number", "user", "event", "quantity", "status", "tickets_issued"]
    inlines = [TicketInline]


@admin.register(Ticket)
class TicketAdmin(ReadOnlyLedgerMixin, admin.ModelAdmin):
    list_display = ["code", "registration", "event", "status", "scanned_at"]
    list_filter = ["status", "event"]
    search_fields = ["code", "registration__registration_number"]
    readonly_fields = [
        "code",
        "registration",
        "event",
        "user",
        "status",
        "sequence",
        "qr_expires_at",
        "scanned_at",
        "scanned_by",
    ]
    exclude = ["qr_data_url"]


@admin.register(FollowUpTask)
class FollowUpTaskAdmin(admin.ModelAdmin):
    list_display = ["kind", "status", "attempts", "created_at", "updated_at"]
    list_filter = ["kind", "status"]
    readonly_fields = ["kind", "payload", "attempts", "last_error", "created_at", "updated_at"]
