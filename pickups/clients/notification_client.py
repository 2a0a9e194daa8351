"""
Client for the notification dispatch collaborator.

Messages are POSTed as JSON to ``NOTIFICATION_WEBHOOK_URL`` when it is
configured; otherwise they are only logged. Delivery outcome never feeds back
into pickup state, so every failure is logged and swallowed here.
"""
import logging
from typing import List, Optional

import requests
from django.conf import settings
from django.utils import timezone
from requests.exceptions import RequestException

logger = logging.getLogger(__name__)

CHANNEL_SMS = 'SMS'
CHANNEL_EMAIL = 'EMAIL'

TYPE_ASSIGNMENT = 'ASSIGNMENT'
TYPE_REMINDER = 'REMINDER'
TYPE_OVERDUE = 'OVERDUE'
TYPE_STATUS_CHANGE = 'STATUS_CHANGE'
TYPE_EMERGENCY = 'EMERGENCY'


class NotificationClient:
    def __init__(self, webhook_url: Optional[str] = None, timeout: Optional[float] = None):
        self.webhook_url = webhook_url if webhook_url is not None else getattr(settings, 'NOTIFICATION_WEBHOOK_URL', None)
        self.timeout = timeout if timeout is not None else getattr(settings, 'NOTIFICATION_TIMEOUT_SECONDS', 5)

    def send(
        self,
        message: str,
        recipients: List[str],
        channel: str = CHANNEL_SMS,
        notification_type: str = TYPE_STATUS_CHANGE,
        pickup_id: Optional[int] = None
    ) -> bool:
        """
        Hand a message to the notification collaborator.

        Returns:
            True if the message was accepted (or logged), False on failure.
        """
        recipients = [r for r in recipients if r]
        if not recipients:
            logger.debug(f"No recipients for {notification_type} notification of pickup {pickup_id}; skipping")
            return False

        payload = {
            'type': notification_type,
            'pickup_id': pickup_id,
            'message': message,
            'recipients': recipients,
            'channel': channel,
            'sent_at': timezone.now().isoformat(),
        }

        if not self.webhook_url:
            logger.info(f"[{channel}] {notification_type} -> {', '.join(recipients)}: {message}")
            return True

        try:
            response = requests.post(self.webhook_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return True
        except RequestException as e:
            logger.error(f"Failed to send {notification_type} notification for pickup {pickup_id}: {e}")
            return False

    def notify_pickup_assignment(self, pickup_id, driver_phone, bin_location):
        message = f"New pickup assigned: {bin_location}. Pickup ID: {pickup_id}"
        return self.send(message, [driver_phone], CHANNEL_SMS, TYPE_ASSIGNMENT, pickup_id)

    def send_pickup_reminder(self, pickup_id, driver_phone, scheduled_at):
        local_time = timezone.localtime(scheduled_at).strftime('%H:%M')
        message = f"Reminder: Pickup scheduled at {local_time}. Pickup ID: {pickup_id}"
        return self.send(message, [driver_phone], CHANNEL_SMS, TYPE_REMINDER, pickup_id)

    def send_overdue_alert(self, pickup_id, driver_phone, bin_location, minutes_overdue):
        message = f"OVERDUE: Pickup at {bin_location} is now {minutes_overdue} minutes overdue."
        return self.send(message, [driver_phone], CHANNEL_SMS, TYPE_OVERDUE, pickup_id)

    def notify_pickup_completion(self, pickup_id, user_email, bin_location):
        message = f"Your bin at {bin_location} has been successfully collected. Pickup ID: {pickup_id}"
        return self.send(message, [user_email], CHANNEL_EMAIL, TYPE_STATUS_CHANGE, pickup_id)
