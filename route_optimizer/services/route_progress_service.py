"""
Progress tracking for planned routes.

Route status follows its stops: the first stop leaving SCHEDULED starts the
route and the last stop completed finishes it.
"""
import logging

from django.db import transaction
from django.utils import timezone

from dispatch_core.exceptions import InvalidStateError, NotFoundError, ValidationFailure
from pickups.clients.realtime_client import EVENT_ROUTE_COMPLETED, RealtimeBroadcaster
from route_optimizer.models import Route, RouteStop

logger = logging.getLogger(__name__)


class RouteProgressService:
    def __init__(self, broadcaster=None):
        self.broadcaster = broadcaster or RealtimeBroadcaster()

    def advance_stop(self, route_id, stop_id, new_status: str) -> RouteStop:
        """
        Set the status of one stop and roll the route status forward.

        A completed stop is terminal, so a completed route never regains open stops.

        Raises:
            NotFoundError: Unknown route, or the stop is not on that route.
            InvalidStateError: The stop is already completed.
            ValidationFailure: Unknown stop status.
        """
        if new_status not in dict(RouteStop.STATUS_CHOICES):
            raise ValidationFailure(f"Unknown stop status: {new_status}")

        with transaction.atomic():
            try:
                route = Route.objects.select_for_update().get(pk=route_id)
            except Route.DoesNotExist:
                raise NotFoundError("Route not found")
            try:
                stop = route.stops.get(pk=stop_id)
            except RouteStop.DoesNotExist:
                raise NotFoundError("Route stop not found")

            if stop.status == RouteStop.STATUS_COMPLETED and new_status != RouteStop.STATUS_COMPLETED:
                raise InvalidStateError(f"Stop {stop.pk} is already completed")

            now = timezone.now()
            stop.status = new_status
            if new_status == RouteStop.STATUS_COMPLETED and stop.actual_arrival is None:
                stop.actual_arrival = now
            stop.save(update_fields=['status', 'actual_arrival'])

            route_completed = False
            if route.status == Route.STATUS_PLANNED and new_status != RouteStop.STATUS_SCHEDULED:
                route.status = Route.STATUS_IN_PROGRESS
            if (
                route.status != Route.STATUS_COMPLETED
                and not route.stops.exclude(status=RouteStop.STATUS_COMPLETED).exists()
            ):
                route.status = Route.STATUS_COMPLETED
                route.completed_at = now
                route_completed = True
            route.save(update_fields=['status', 'completed_at', 'updated_at'])

        logger.info(f"Stop {stop.pk} of route {route.pk} set to {new_status}; route is {route.status}")
        if route_completed:
            self.broadcaster.publish(EVENT_ROUTE_COMPLETED, {
                'route_id': route.pk,
                'driver_id': route.driver_id,
                'completed_at': route.completed_at.isoformat(),
            })
        return stop
