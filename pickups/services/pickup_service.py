"""
Pickup lifecycle: creation, priority and schedule policy, status transitions.

This service is the only writer of pickup status. Completing a pickup empties
its bin in the same database transaction.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from bins.models import Bin
from dispatch_core.exceptions import (
    ForbiddenError, InvalidStateError, NotFoundError, ValidationFailure
)
from dispatch_core.roles import ROLE_DRIVER, ROLE_USER, get_user_role, is_admin
from fleet.models import Driver
from fleet.services.driver_locator import DriverLocator
from fleet.services.status_services import update_driver_location
from pickups.clients.notification_client import NotificationClient
from pickups.clients.realtime_client import (
    EVENT_ASSIGNMENT, EVENT_PICKUP_CREATED, EVENT_STATUS_CHANGE, RealtimeBroadcaster
)
from pickups.constants import (
    AUTO_ASSIGN_LEVEL, DEFAULT_PICKUP_PRIORITY, HIGH_PRIORITY_LEVEL, PRIORITY_HIGH,
    PRIORITY_RANK, PRIORITY_URGENT, SCHEDULE_OFFSETS, URGENT_PRIORITY_LEVEL
)
from pickups.models import Pickup

logger = logging.getLogger(__name__)


class PickupService:
    def __init__(self, locator=None, notifier=None, broadcaster=None):
        """
        Initialize the pickup service.

        Args:
            locator: Driver locator used for auto-assignment. Defaults to DriverLocator.
            notifier: Notification collaborator. Defaults to NotificationClient.
            broadcaster: Realtime event sink. Defaults to RealtimeBroadcaster.
        """
        self.locator = locator or DriverLocator()
        self.notifier = notifier or NotificationClient()
        self.broadcaster = broadcaster or RealtimeBroadcaster()

    # --- Policy ---

    @staticmethod
    def derive_priority(fill_level: float, requested: Optional[str] = None) -> str:
        """
        Priority for a new pickup: the requested one (default MEDIUM), raised to
        HIGH at 85% and URGENT at 95% fill.
        """
        if fill_level >= URGENT_PRIORITY_LEVEL:
            return PRIORITY_URGENT
        if fill_level >= HIGH_PRIORITY_LEVEL:
            return PRIORITY_HIGH
        return requested or DEFAULT_PICKUP_PRIORITY

    @staticmethod
    def calculate_scheduled_time(priority: str, now: Optional[datetime] = None) -> datetime:
        now = now or timezone.now()
        return now + SCHEDULE_OFFSETS.get(priority, SCHEDULE_OFFSETS[DEFAULT_PICKUP_PRIORITY])

    # --- Lookups ---

    def get_pickup(self, pickup_id, requester=None) -> Pickup:
        try:
            pickup = Pickup.objects.select_related('bin', 'driver__user', 'created_by').get(pk=pickup_id)
        except Pickup.DoesNotExist:
            raise NotFoundError("Pickup not found")
        self._check_access(pickup, requester)
        return pickup

    def upcoming_pickups_for_driver(self, driver_id):
        """Active pickups of a driver due before the end of tomorrow, earliest first."""
        end_of_tomorrow = timezone.localtime().replace(
            hour=23, minute=59, second=59, microsecond=999999
        ) + timedelta(days=1)
        return list(
            Pickup.objects
            .select_related('bin')
            .filter(
                driver_id=driver_id,
                status__in=Pickup.ACTIVE_STATUSES,
                scheduled_at__lte=end_of_tomorrow,
            )
            .order_by('scheduled_at')
        )

    # --- Operations ---

    def create_pickup(
        self,
        bin_id,
        requester=None,
        driver_id=None,
        scheduled_at: Optional[datetime] = None,
        priority: Optional[str] = None,
        notes: Optional[str] = None,
        pickup_type: str = Pickup.TYPE_ON_DEMAND
    ) -> Pickup:
        """
        Create a SCHEDULED pickup for a bin.

        Args:
            bin_id: Primary key of the bin to collect.
            requester: User asking for the pickup; None for the system.
            driver_id: Optional driver to assign explicitly.
            scheduled_at: Optional time; derived from the priority when omitted.
            priority: Optional requested priority; may be raised by fill level.
            notes: Free text.
            pickup_type: SCHEDULED, ON_DEMAND or EMERGENCY.

        Returns:
            The created Pickup.

        Raises:
            NotFoundError: Unknown bin.
            ForbiddenError: A plain user asked for a bin they do not own.
            InvalidStateError: The explicit driver cannot be assigned, or the
                bin already has an active pickup.
            ValidationFailure: Unknown priority or pickup type.
        """
        try:
            bin_obj = Bin.objects.select_related('owner').get(pk=bin_id)
        except Bin.DoesNotExist:
            raise NotFoundError("Bin not found")

        if get_user_role(requester) == ROLE_USER and bin_obj.owner_id != requester.pk:
            raise ForbiddenError("You can only create pickups for your own bins")

        if priority is not None and priority not in PRIORITY_RANK:
            raise ValidationFailure(f"Unknown priority: {priority}")
        if pickup_type not in dict(Pickup.TYPE_CHOICES):
            raise ValidationFailure(f"Unknown pickup type: {pickup_type}")

        driver = self._get_assignable_driver(driver_id) if driver_id is not None else None

        fill_level = bin_obj.fill_level
        if driver is None and fill_level >= AUTO_ASSIGN_LEVEL:
            driver = self._find_best_available_driver(bin_obj)

        priority = self.derive_priority(fill_level, priority)
        scheduled_at = scheduled_at or self.calculate_scheduled_time(priority)

        try:
            with transaction.atomic():
                if Pickup.objects.filter(bin=bin_obj, status__in=Pickup.ACTIVE_STATUSES).exists():
                    raise InvalidStateError(f"Bin {bin_obj.bin_code} already has an active pickup")
                pickup = Pickup.objects.create(
                    bin=bin_obj,
                    driver=driver,
                    created_by=requester or bin_obj.owner,
                    status=Pickup.STATUS_SCHEDULED,
                    priority=priority,
                    pickup_type=pickup_type,
                    scheduled_at=scheduled_at,
                    notes=notes or '',
                )
        except IntegrityError:
            # Lost a race with a concurrent creation for the same bin
            raise InvalidStateError(f"Bin {bin_obj.bin_code} already has an active pickup")

        logger.info(
            f"Pickup {pickup.pk} created for bin {bin_obj.bin_code} "
            f"(level {fill_level}%, priority {priority}, driver {driver.pk if driver else None})"
        )

        self.broadcaster.publish(EVENT_PICKUP_CREATED, self._pickup_payload(pickup))
        if driver is not None:
            self._announce_assignment(pickup)
        return pickup

    def update_status(
        self,
        pickup_id,
        new_status: str,
        notes: Optional[str] = None,
        location: Optional[dict] = None,
        requester=None
    ) -> Pickup:
        """
        Move a pickup along SCHEDULED -> IN_PROGRESS -> COMPLETED, or to CANCELLED.

        Repeating the current status changes nothing but the notes, and a
        completed pickup keeps the notes it was completed with. The start and
        completion timestamps are stamped once. Completion resets the bin in
        the same transaction.

        Args:
            location: Optional {"latitude": .., "longitude": ..} reported by the
                driver; stored as the assigned driver's last known position.
        """
        if new_status not in dict(Pickup.STATUS_CHOICES):
            raise ValidationFailure(f"Unknown pickup status: {new_status}")

        with transaction.atomic():
            pickup = self._get_pickup_for_update(pickup_id)
            self._check_access(pickup, requester)

            previous_status = pickup.status
            changed = False
            if new_status == previous_status == Pickup.STATUS_CANCELLED:
                raise InvalidStateError("Pickup is already cancelled")
            if new_status != previous_status:
                if not pickup.can_transition_to(new_status):
                    raise InvalidStateError(
                        f"Cannot change pickup status from {previous_status} to {new_status}"
                    )
                changed = True
                now = timezone.now()
                pickup.status = new_status
                if new_status == Pickup.STATUS_IN_PROGRESS and pickup.started_at is None:
                    pickup.started_at = now
                elif new_status == Pickup.STATUS_COMPLETED and pickup.completed_at is None:
                    pickup.completed_at = now

            if notes is not None and previous_status != Pickup.STATUS_COMPLETED:
                pickup.notes = notes
            pickup.save()

            if changed and new_status == Pickup.STATUS_COMPLETED:
                bin_obj = Bin.objects.select_for_update().get(pk=pickup.bin_id)
                bin_obj.mark_emptied(pickup.completed_at)

            if location and pickup.driver_id:
                update_driver_location(
                    Driver.objects.get(pk=pickup.driver_id),
                    location.get('latitude'),
                    location.get('longitude')
                )

        if changed:
            logger.info(f"Pickup {pickup.pk} moved from {previous_status} to {new_status}")
            self.broadcaster.publish(EVENT_STATUS_CHANGE, dict(
                self._pickup_payload(pickup), previous_status=previous_status
            ))
            if new_status == Pickup.STATUS_COMPLETED:
                self._announce_completion(pickup)
        return pickup

    def cancel_pickup(self, pickup_id, reason: str, requester=None) -> Pickup:
        with transaction.atomic():
            pickup = self._get_pickup_for_update(pickup_id)
            self._check_access(pickup, requester)

            if pickup.status == Pickup.STATUS_COMPLETED:
                raise InvalidStateError("Cannot cancel completed pickup")
            if pickup.status == Pickup.STATUS_CANCELLED:
                raise InvalidStateError("Pickup is already cancelled")

            previous_status = pickup.status
            pickup.status = Pickup.STATUS_CANCELLED
            pickup.notes = reason or ''
            pickup.save(update_fields=['status', 'notes', 'updated_at'])

        logger.info(f"Pickup {pickup.pk} cancelled: {reason}")
        self.broadcaster.publish(EVENT_STATUS_CHANGE, dict(
            self._pickup_payload(pickup), previous_status=previous_status
        ))
        return pickup

    def assign_driver(self, pickup_id, driver_id, requester, scheduled_at: Optional[datetime] = None) -> Pickup:
        """Assign a driver to a pickup. Administrators only."""
        if not is_admin(requester):
            raise ForbiddenError("Only administrators can assign drivers")

        with transaction.atomic():
            pickup = self._get_pickup_for_update(pickup_id)
            if pickup.is_terminal:
                raise InvalidStateError(f"Cannot assign a driver to a {pickup.status.lower()} pickup")

            driver = self._get_assignable_driver(driver_id)
            pickup.driver = driver
            if scheduled_at is not None:
                pickup.scheduled_at = scheduled_at
            pickup.save(update_fields=['driver', 'scheduled_at', 'updated_at'])

        logger.info(f"Driver {driver.pk} assigned to pickup {pickup.pk}")
        self._announce_assignment(pickup)
        return pickup

    def escalate_priority(self, pickup_id, priority: str = PRIORITY_URGENT) -> Pickup:
        if priority not in PRIORITY_RANK:
            raise ValidationFailure(f"Unknown priority: {priority}")

        updated = Pickup.objects.filter(pk=pickup_id).update(priority=priority, updated_at=timezone.now())
        if not updated:
            raise NotFoundError("Pickup not found")
        return Pickup.objects.select_related('bin', 'driver').get(pk=pickup_id)

    # --- Internals ---

    def _get_pickup_for_update(self, pickup_id) -> Pickup:
        try:
            return Pickup.objects.select_for_update().get(pk=pickup_id)
        except Pickup.DoesNotExist:
            raise NotFoundError("Pickup not found")

    def _check_access(self, pickup: Pickup, requester) -> None:
        role = get_user_role(requester)
        if role == ROLE_USER and pickup.created_by_id != requester.pk:
            raise ForbiddenError("Access denied")
        if role == ROLE_DRIVER and pickup.driver_id != requester.driver_profile.pk:
            raise ForbiddenError("Access denied")

    def _get_assignable_driver(self, driver_id) -> Driver:
        try:
            driver = Driver.objects.select_related('user').get(pk=driver_id)
        except Driver.DoesNotExist:
            raise InvalidStateError("Driver not found or not available")
        if not driver.can_be_assigned:
            raise InvalidStateError("Driver not found or not available")
        return driver

    def _find_best_available_driver(self, bin_obj: Bin) -> Optional[Driver]:
        try:
            nearest = self.locator.find_nearest(*bin_obj.coordinates)
        except Exception as e:
            logger.error(f"Error finding best available driver for bin {bin_obj.bin_code}: {e}", exc_info=True)
            return None
        return nearest.driver if nearest else None

    def _announce_assignment(self, pickup: Pickup) -> None:
        self.broadcaster.publish(EVENT_ASSIGNMENT, self._pickup_payload(pickup))
        driver = pickup.driver
        if driver and driver.phone:
            self.notifier.notify_pickup_assignment(pickup.pk, driver.phone, pickup.bin.location)

    def _announce_completion(self, pickup: Pickup) -> None:
        owner = pickup.bin.owner
        if owner and owner.email:
            self.notifier.notify_pickup_completion(pickup.pk, owner.email, pickup.bin.location)

    @staticmethod
    def _pickup_payload(pickup: Pickup) -> dict:
        return {
            'pickup_id': pickup.pk,
            'status': pickup.status,
            'priority': pickup.priority,
            'scheduled_at': pickup.scheduled_at.isoformat() if pickup.scheduled_at else None,
            'bin_id': pickup.bin_id,
            'driver_id': pickup.driver_id,
        }
