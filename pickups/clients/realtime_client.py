"""
Sink for realtime events consumed by connected dashboards and driver apps.

The fan-out transport is external; this default implementation records the
events in the log. Swap in another broadcaster by passing it to the services.
"""
import logging
from typing import Any, Dict

from django.utils import timezone

logger = logging.getLogger(__name__)

EVENT_PICKUP_CREATED = 'pickup_created'
EVENT_ASSIGNMENT = 'assignment'
EVENT_STATUS_CHANGE = 'status_change'
EVENT_ROUTE_COMPLETED = 'route_completed'


class RealtimeBroadcaster:
    def publish(self, event_type: str, payload: Dict[str, Any]) -> None:
        event = dict(payload, type=event_type, timestamp=timezone.now().isoformat())
        logger.info(f"Realtime event {event_type}: {event}")
