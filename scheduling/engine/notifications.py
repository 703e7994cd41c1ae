"""Notification interface handed to the outbound-messaging collaborator.

The engine decides what to send and when; how it is delivered belongs to
whoever implements ``Notifier``.
"""

import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Optional, Protocol

from scheduling.models.appointment import Appointment

logger = logging.getLogger(__name__)

REMINDER_TEMPLATE = (
    'Appointment reminder\n\n'
    'Hello, {client_name}!\n'
    'You have an appointment in 2 hours:\n\n'
    'Date: {date}\n'
    'Time: {start_time}\n'
    'Service: {service_name}\n'
    'Provider: {provider_name}\n\n'
    'To cancel, use the booking system at least 2 hours before your appointment.\n\n'
    'See you soon!'
)


@dataclass(frozen=True)
class ReminderNotice:
    appointment_id: int
    client_name: str
    phone: Optional[str]
    email: Optional[str]
    provider_name: str
    service_name: str
    date: date
    start_time: time
    message: str

    @property
    def has_contact(self) -> bool:
        return bool(self.phone or self.email)


class Notifier(Protocol):
    def send(self, notice: ReminderNotice) -> bool:
        """Deliver ``notice``; return whether delivery succeeded."""


def render_reminder(client_name: str, provider_name: str, service_name: str, day: date, start: time) -> str:
    return REMINDER_TEMPLATE.format(
        client_name=client_name,
        date=day.strftime('%d/%m/%Y'),
        start_time=start.strftime('%H:%M'),
        service_name=service_name,
        provider_name=provider_name,
    )


def build_reminder(appointment: Appointment) -> ReminderNotice:
    client = appointment.client
    provider_name = appointment.provider.name if appointment.provider else ''
    service_name = appointment.service.name if appointment.service else ''
    client_name = client.name if client else ''

    return ReminderNotice(
        appointment_id=appointment.id,
        client_name=client_name,
        phone=client.phone if client else None,
        email=client.email if client else None,
        provider_name=provider_name,
        service_name=service_name,
        date=appointment.appointment_date,
        start_time=appointment.start_time,
        message=render_reminder(
            client_name,
            provider_name,
            service_name,
            appointment.appointment_date,
            appointment.start_time,
        ),
    )


class LoggingNotifier:
    """Writes reminders to the log instead of a messaging transport."""

    def send(self, notice: ReminderNotice) -> bool:
        logger.info(
            'Reminder for appointment %s to %s:\n%s',
            notice.appointment_id,
            notice.phone or notice.email,
            notice.message,
        )
        return True
