"""
Booking lifecycle notifications.

Notifications are informational and fire-and-forget: a failed dispatch is
logged and never alters an already committed transition.
"""

import logging
from typing import Optional

import httpx

from ..config import COLLABORATOR_TIMEOUT, NOTIFICATION_WEBHOOK_URL

logger = logging.getLogger(__name__)


def booking_payload(booking) -> dict:
    return {
        "bookingId": booking.id,
        "clientId": booking.client_id,
        "providerId": booking.provider_id,
        "status": booking.status,
        "scheduledAt": booking.scheduled_at.isoformat() if booking.scheduled_at else None,
    }


class Notifier:
    """Base notifier; logs events only"""

    def notify(self, event: str, recipients: list[str], data: dict) -> None:
        logger.info(f"🔔 {event} → {', '.join(recipients)}")


class WebhookNotifier(Notifier):
    """Posts lifecycle events to the notification service webhook"""

    def __init__(self, url: str, timeout: float = COLLABORATOR_TIMEOUT):
        self.url = url
        self.timeout = timeout

    def notify(self, event, recipients, data):
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(
                self.url, json={"type": event, "recipients": recipients, "data": data}
            )
            response.raise_for_status()


def dispatch(notifier: Optional[Notifier], event: str, booking, recipients: list[str], **extra) -> bool:
    """
    Send a lifecycle notification, swallowing and logging any failure.

    Returns:
        bool: True when the notifier accepted the event
    """
    if notifier is None:
        return False
    data = booking_payload(booking)
    data.update(extra)
    try:
        notifier.notify(event, recipients, data)
        return True
    except Exception as e:
        logger.error(f"❌ Failed to send {event} notification for booking {booking.id}: {e}")
        return False


def get_notifier() -> Notifier:
    if NOTIFICATION_WEBHOOK_URL:
        return WebhookNotifier(NOTIFICATION_WEBHOOK_URL)
    return Notifier()
