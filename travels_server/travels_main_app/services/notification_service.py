"""Notification service - fire-and-forget booking events"""
import logging

import requests
from django.conf import settings
from django.db import transaction

from ..utils.constants import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Hands booking events to the notification collaborator.

    Events are queued on Celery only after the surrounding database
    transaction commits. Delivery is attempted once; a failure anywhere in
    this path is logged and never reaches the booking flow.
    """

    def build_event(self, booking, event_type):
        return {
            'user_id': booking.user_id,
            'email': getattr(booking.user, 'email', '') or '',
            'pnr': booking.pnr,
            'route': f"{booking.source} → {booking.destination}",
            'travel_date': booking.travel_date.isoformat(),
            'amount': str(booking.refund_amount if event_type == NotificationEvent.BOOKING_CANCELLED
                          else booking.total_amount),
            'event_type': event_type,
        }

    def send_booking_confirmation(self, booking):
        self._notify(booking, NotificationEvent.BOOKING_CREATED)

    def send_cancellation_notification(self, booking):
        self._notify(booking, NotificationEvent.BOOKING_CANCELLED)

    def _notify(self, booking, event_type):
        try:
            self.dispatch(self.build_event(booking, event_type))
        except Exception as e:
            logger.warning(f"[NOTIFY] could not prepare {event_type} for {booking.pnr}: {e}")

    def dispatch(self, event):
        transaction.on_commit(lambda: self._enqueue(event))

    def _enqueue(self, event):
        from ..tasks import deliver_booking_event
        try:
            deliver_booking_event.delay(event)
        except Exception as e:
            logger.warning(f"[NOTIFY] could not queue {event['event_type']} for {event['pnr']}: {e}")

    def deliver(self, event):
        """Single delivery attempt; returns True when the collaborator accepted it"""
        logger.info(f"[NOTIFY] {event['event_type']} pnr={event['pnr']} user={event['user_id']} "
                    f"route={event['route']} amount={event['amount']}")

        url = getattr(settings, 'NOTIFICATION_WEBHOOK_URL', '')
        if not url:
            return True

        try:
            response = requests.post(url, json=event, timeout=settings.NOTIFICATION_TIMEOUT_SECONDS)
        except requests.RequestException as e:
            logger.error(f"[NOTIFY] ✗ delivery failed for {event['pnr']}: {e}")
            return False

        if response.status_code >= 400:
            logger.error(f"[NOTIFY] ✗ {response.status_code} for {event['pnr']}: {response.text}")
            return False
        return True
