"""Outbound notifications for availability and booking changes."""

import logging

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """A notification could not be delivered."""


class Notifier:
    """
    Default notifier: records each notification in the application log.

    Delivery channels (email, SMS) subclass this and raise
    ``NotificationError`` or return False when a send fails.
    """

    def notify_customer(self, booking, slot) -> bool:
        logger.info(
            'Notifying %s: slot %s (%s - %s) is no longer available for booking %s',
            booking.customer_email,
            slot.id,
            slot.start_time.isoformat(),
            slot.end_time.isoformat(),
            booking.id,
        )
        return True

    def notify_availability_proposed(self, availability, proposed_by) -> None:
        logger.info(
            'Availability %s proposed to provider %s by %s',
            availability.id,
            availability.provider_id,
            proposed_by.email,
        )

    def notify_availability_accepted(self, availability) -> None:
        logger.info('Availability %s accepted by provider %s', availability.id, availability.provider_id)

    def notify_availability_rejected(self, availability, reason: str | None) -> None:
        logger.info('Availability %s rejected: %s', availability.id, reason or 'no reason given')

    def notify_availability_cancelled(self, availability, reason: str | None) -> None:
        logger.info('Availability %s cancelled: %s', availability.id, reason or 'no reason given')


_default_notifier = Notifier()


def get_notifier() -> Notifier:
    return _default_notifier
