"""
Background dispatch jobs: auto-create pickups for full bins, remind drivers
of imminent pickups and escalate overdue ones.

Every job handles its items one by one; a failing item is logged and the
batch continues.
"""
import logging

from django.conf import settings
from django.utils import timezone

from bins.models import Bin
from pickups.clients.notification_client import NotificationClient
from pickups.constants import (
    AUTO_PICKUP_LEVEL, AUTO_PICKUP_REQUESTED_PRIORITY, OVERDUE_THRESHOLD,
    PRIORITY_URGENT, REMINDER_WINDOW
)
from pickups.models import Pickup
from pickups.scheduling import JobScheduler, PeriodicJob
from pickups.services.pickup_service import PickupService

logger = logging.getLogger(__name__)


class DispatchScheduler:
    def __init__(self, pickup_service=None, notifier=None):
        self.notifier = notifier or NotificationClient()
        self.pickup_service = pickup_service or PickupService(notifier=self.notifier)

    def create_automatic_pickups(self) -> int:
        """
        Create a pickup for every active bin at or above the auto-pickup level
        that has no active pickup yet.

        Returns:
            Number of pickups created.
        """
        bins = (
            Bin.objects
            .filter(is_active=True, current_level__gte=AUTO_PICKUP_LEVEL)
            .exclude(pickups__status__in=Pickup.ACTIVE_STATUSES)
            .distinct()
            .order_by('-current_level', 'pk')
        )

        created = 0
        for bin_obj in bins:
            try:
                self.pickup_service.create_pickup(
                    bin_id=bin_obj.pk,
                    requester=None,
                    priority=AUTO_PICKUP_REQUESTED_PRIORITY,
                    pickup_type=Pickup.TYPE_SCHEDULED,
                    notes=f"Automatic pickup - bin {bin_obj.fill_level:g}% full",
                )
                created += 1
            except Exception as e:
                logger.error(f"Error creating automatic pickup for bin {bin_obj.bin_code}: {e}", exc_info=True)

        if created:
            logger.info(f"Created {created} automatic pickups")
        return created

    def send_pickup_reminders(self) -> int:
        """Remind drivers of pickups due within the reminder window. Returns reminders sent."""
        now = timezone.now()
        pickups = (
            Pickup.objects
            .select_related('driver')
            .filter(
                status=Pickup.STATUS_SCHEDULED,
                driver__isnull=False,
                scheduled_at__gte=now,
                scheduled_at__lte=now + REMINDER_WINDOW,
            )
        )

        sent = 0
        for pickup in pickups:
            if not pickup.driver.phone:
                logger.debug(f"Driver {pickup.driver_id} has no phone; no reminder for pickup {pickup.pk}")
                continue
            try:
                if self.notifier.send_pickup_reminder(pickup.pk, pickup.driver.phone, pickup.scheduled_at):
                    sent += 1
            except Exception as e:
                logger.error(f"Error sending reminder for pickup {pickup.pk}: {e}", exc_info=True)

        if sent:
            logger.info(f"Sent {sent} pickup reminders")
        return sent

    def escalate_overdue_pickups(self) -> int:
        """Raise overdue scheduled pickups to URGENT and alert their drivers. Returns pickups escalated."""
        now = timezone.now()
        pickups = (
            Pickup.objects
            .select_related('bin', 'driver')
            .filter(
                status=Pickup.STATUS_SCHEDULED,
                driver__isnull=False,
                scheduled_at__lt=now - OVERDUE_THRESHOLD,
            )
        )

        escalated = 0
        for pickup in pickups:
            try:
                self.pickup_service.escalate_priority(pickup.pk, PRIORITY_URGENT)
                minutes_overdue = int((now - pickup.scheduled_at).total_seconds() // 60)
                self.notifier.send_overdue_alert(
                    pickup.pk, pickup.driver.phone, pickup.bin.location, minutes_overdue
                )
                escalated += 1
            except Exception as e:
                logger.error(f"Error handling overdue pickup {pickup.pk}: {e}", exc_info=True)

        if escalated:
            logger.warning(f"Escalated {escalated} overdue pickups")
        return escalated

    def build_scheduler(self) -> JobScheduler:
        return JobScheduler([
            PeriodicJob('create_automatic_pickups', settings.AUTO_PICKUP_INTERVAL_SECONDS,
                        self.create_automatic_pickups),
            PeriodicJob('send_pickup_reminders', settings.PICKUP_REMINDER_INTERVAL_SECONDS,
                        self.send_pickup_reminders),
            PeriodicJob('escalate_overdue_pickups', settings.OVERDUE_CHECK_INTERVAL_SECONDS,
                        self.escalate_overdue_pickups),
        ])
