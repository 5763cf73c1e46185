from admissions.domain.errors import ForbiddenError
from admissions.domain.models import Actor
from admissions.domain.value_objects import EventId, UserId
from admissions.gateways.interfaces import IdentityDirectory


def ensure_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise ForbiddenError("Admin access required")


def ensure_owner_or_admin(actor: Actor, owner_id: UserId) -> None:
    if actor.is_admin or actor.user_id == owner_id:
        return
    raise ForbiddenError()


def ensure_event_staff(actor: Actor, identity: IdentityDirectory, event_id: EventId) -> None:
    """Admins and owners of the event's organization."""
    if actor.is_admin or identity.is_event_organizer(actor.user_id, event_id):
        return
    raise ForbiddenError()


def ensure_can_view(
    actor: Actor, identity: IdentityDirectory, owner_id: UserId, event_id: EventId
) -> None:
    if actor.user_id == owner_id:
        return
    ensure_event_staff(actor, identity, event_id)
