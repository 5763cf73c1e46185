"""Registrant notifications delivered through Django's mail backend."""

import logging

from django.core.mail import send_mail

from admissions.conf import admissions_setting
from admissions.domain.models import Contact, Notice, Registration
from admissions.gateways.interfaces import NotificationDispatcher

logger = logging.getLogger(__name__)

SUBJECTS = {
    Notice.CONFIRMED: "Registration confirmed",
    Notice.WAITLISTED: "You are on the waitlist",
    Notice.PROMOTED: "A seat opened up: your registration is confirmed",
}

BODIES = {
    Notice.CONFIRMED: (
        "Hi {name},\n\nYour registration {number} for {quantity} seat(s) is confirmed. "
        "Your tickets are available in your account."
    ),
    Notice.WAITLISTED: (
        "Hi {name},\n\nThe event is currently full. Registration {number} for "
        "{quantity} seat(s) has been added to the waitlist and will be confirmed "
        "automatically if seats become available."
    ),
    Notice.PROMOTED: (
        "Hi {name},\n\nGood news: seats became available and registration {number} "
        "for {quantity} seat(s) is now confirmed. Your tickets are available in your account."
    ),
}


class EmailNotificationDispatcher(NotificationDispatcher):
    def send(self, contact: Contact, notice: Notice, registration: Registration) -> None:
        body = BODIES[notice].format(
            name=contact.name,
            number=registration.registration_number,
            quantity=registration.quantity.value,
        )
        send_mail(
            subject=SUBJECTS[notice],
            message=body,
            from_email=admissions_setting("NOTIFICATION_FROM_EMAIL"),
            recipient_list=[contact.email],
        )
        logger.info(
            "Sent %s notice for registration %s", notice.value, registration.registration_number
        )
