from typing import Any

from django.contrib.auth import get_user_model

from admissions import models as orm
from admissions.domain.models import Actor, Contact
from admissions.domain.value_objects import EventId, OrganizationId, UserId
from admissions.gateways.interfaces import IdentityDirectory


class DjangoIdentityDirectory(IdentityDirectory):
    """Staff users are admins; organization owners organize its events."""

    def resolve(self, user: Any) -> Actor:
        return Actor(
            user_id=UserId(user.pk),
            is_admin=bool(user.is_staff or user.is_superuser),
        )

    def is_event_organizer(self, user_id: UserId, event_id: EventId) -> bool:
        return orm.Organization.objects.filter(
            events__pk=event_id.value, owners__pk=user_id.value
        ).exists()

    def is_organization_suspended(self, organization_id: OrganizationId) -> bool:
        return orm.Organization.objects.filter(
            pk=organization_id.value, status=orm.Organization.Status.SUSPENDED
        ).exists()

    def contact_for(self, user_id: UserId) -> Contact | None:
        user = get_user_model().objects.filter(pk=user_id.value).first()
        if user is None or not user.email:
            return None
        name = user.get_full_name() or user.get_username()
        return Contact(name=name, email=user.email)
