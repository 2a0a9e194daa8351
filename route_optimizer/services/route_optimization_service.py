import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple, Union

from django.db import transaction
from django.utils import timezone

from dispatch_core.exceptions import (
    ExternalServiceError, InvalidStateError, NotFoundError, ValidationFailure
)
from fleet.models import Driver
from pickups.constants import PRIORITY_RANK
from pickups.models import Pickup
from route_optimizer import settings as optimizer_settings
from route_optimizer.core.constants import (
    METHOD_MAPS_API, METHOD_NEAREST_NEIGHBOR, METHOD_SINGLE_STOP
)
from route_optimizer.core.distance_matrix import DistanceMatrixBuilder
from route_optimizer.core.nearest_neighbor import NearestNeighborSolver
from route_optimizer.core.types_1 import Location, OptimizedRoute, PlannedStop, StopCandidate
from route_optimizer.models import Route, RouteStop
from route_optimizer.services.maps_service import GoogleMapsService

logger = logging.getLogger(__name__)

StartLocation = Union[Location, Tuple[float, float]]


class RouteOptimizationService:
    def __init__(self, maps_service=None, solver=None):
        """
        Initialize the route optimization service.

        Args:
            maps_service: Directions provider. If None, a default GoogleMapsService is created.
            solver: Fallback heuristic. If None, NearestNeighborSolver is used.
        """
        self.maps_service = maps_service or GoogleMapsService()
        self.solver = solver or NearestNeighborSolver()

    def optimize_route(
        self,
        driver_id,
        pickup_ids: Sequence[int],
        start_location: Optional[StartLocation] = None
    ) -> OptimizedRoute:
        """
        Order a driver's scheduled pickups into a new route.

        Google Directions chooses the order when it is reachable; otherwise the
        nearest-neighbour heuristic does. The route, its stops and the
        reassignment of every pickup to the driver are written in one
        transaction.

        Args:
            driver_id: Driver the route is planned for.
            pickup_ids: Candidate pickups. Only SCHEDULED ones are routed.
            start_location: Where the driver sets off. Defaults to the
                driver's last known position, then to the depot.

        Returns:
            OptimizedRoute describing the persisted route.

        Raises:
            ValidationFailure: No pickup ids were given.
            NotFoundError: Unknown driver.
            InvalidStateError: None of the pickups is SCHEDULED.
        """
        if not pickup_ids:
            raise ValidationFailure("At least one pickup is required")

        try:
            driver = Driver.objects.select_related('user').get(pk=driver_id)
        except Driver.DoesNotExist:
            raise NotFoundError("Driver not found")

        candidates = self._load_candidates(pickup_ids)
        if not candidates:
            raise InvalidStateError("No scheduled pickups to optimize")

        start = self._resolve_start(driver, start_location)

        if len(candidates) == 1:
            order = [0]
            distance = DistanceMatrixBuilder.path_length([start.as_tuple(), candidates[0].location.as_tuple()])
            duration = self._travel_minutes(distance) + optimizer_settings.SERVICE_TIME_PER_STOP_MINUTES
            method = METHOD_SINGLE_STOP
        else:
            try:
                order, distance, duration = self._optimize_with_maps(start, candidates)
                method = METHOD_MAPS_API
            except ExternalServiceError as e:
                logger.warning(f"Maps optimization unavailable for driver {driver.pk}, using nearest neighbour: {e}")
                order, distance, duration = self._optimize_with_heuristic(start, candidates)
                method = METHOD_NEAREST_NEIGHBOR
            except Exception as e:
                logger.error(f"Error optimizing route with Google Maps: {str(e)}", exc_info=True)
                logger.info("Falling back to nearest neighbour")
                order, distance, duration = self._optimize_with_heuristic(start, candidates)
                method = METHOD_NEAREST_NEIGHBOR

        ordered = [candidates[i] for i in order]
        return self._save_route(driver, ordered, distance, duration, method)

    def optimize_driver_route(self, driver_id) -> Optional[OptimizedRoute]:
        """Optimize every SCHEDULED pickup of a driver, most urgent first. None when there are none."""
        pickups = list(
            Pickup.objects
            .filter(driver_id=driver_id, status=Pickup.STATUS_SCHEDULED)
            .order_by('scheduled_at', 'pk')
        )
        if not pickups:
            logger.info(f"Driver {driver_id} has no scheduled pickups to optimize")
            return None

        pickups.sort(key=lambda p: -PRIORITY_RANK.get(p.priority, 0))
        return self.optimize_route(driver_id, [p.pk for p in pickups])

    # --- Strategies ---

    def _optimize_with_maps(self, start: Location, candidates: List[StopCandidate]) -> Tuple[List[int], float, float]:
        destination = candidates[-1]
        waypoints = candidates[:-1]
        result = self.maps_service.get_route(
            origin=start,
            destination=destination.location,
            waypoints=[c.location for c in waypoints],
            optimize_waypoints=True
        )
        order = list(result.waypoint_order) + [len(candidates) - 1]
        duration = result.duration_minutes + optimizer_settings.SERVICE_TIME_PER_STOP_MINUTES * len(candidates)
        return order, result.distance_km, duration

    def _optimize_with_heuristic(self, start: Location, candidates: List[StopCandidate]) -> Tuple[List[int], float, float]:
        order, legs = self.solver.solve(start.as_tuple(), [c.location.as_tuple() for c in candidates])
        distance = float(sum(legs))
        duration = self._travel_minutes(distance) + optimizer_settings.SERVICE_TIME_PER_STOP_MINUTES * len(candidates)
        return order, distance, duration

    # --- Persistence ---

    def _save_route(
        self,
        driver: Driver,
        ordered: List[StopCandidate],
        distance: float,
        duration: float,
        method: str
    ) -> OptimizedRoute:
        now = timezone.now()
        arrivals = self._estimate_arrivals(ordered, now)
        total_distance = round(distance, 2)
        estimated_duration = int(round(duration))

        with transaction.atomic():
            route = Route.objects.create(
                name=f"Route {timezone.localdate(now)} - {driver.display_name}",
                driver=driver,
                total_distance=Decimal(str(total_distance)),
                estimated_duration=estimated_duration,
                optimization_method=method,
            )

            planned = []
            for index, (candidate, eta) in enumerate(zip(ordered, arrivals), start=1):
                stop = RouteStop.objects.create(
                    route=route,
                    pickup_id=candidate.pickup_id,
                    bin_id=candidate.bin_id,
                    stop_order=index,
                    estimated_arrival=eta,
                )
                planned.append(PlannedStop(
                    pickup_id=candidate.pickup_id,
                    bin_id=candidate.bin_id,
                    order=index,
                    estimated_arrival=eta,
                    stop_id=stop.pk,
                    bin_code=candidate.bin_code,
                    address=candidate.address,
                ))

            Pickup.objects.filter(pk__in=[c.pickup_id for c in ordered]).update(driver=driver, updated_at=now)

        logger.info(
            f"Route {route.pk} for driver {driver.pk}: {len(planned)} stops, "
            f"{total_distance} km, {estimated_duration} min ({method})"
        )
        return OptimizedRoute(
            route_id=route.pk,
            driver_id=driver.pk,
            total_distance=total_distance,
            estimated_duration=estimated_duration,
            method=method,
            stops=planned,
        )

    # --- Helpers ---

    @staticmethod
    def _load_candidates(pickup_ids: Sequence[int]) -> List[StopCandidate]:
        pickups = {
            p.pk: p for p in
            Pickup.objects.select_related('bin').filter(pk__in=pickup_ids, status=Pickup.STATUS_SCHEDULED)
        }
        candidates = []
        seen = set()
        # Keep the caller's order; it decides the destination and breaks ties
        for pickup_id in pickup_ids:
            pickup = pickups.get(pickup_id)
            if pickup is None or pickup_id in seen:
                continue
            seen.add(pickup_id)
            candidates.append(StopCandidate(
                pickup_id=pickup.pk,
                bin_id=pickup.bin_id,
                latitude=float(pickup.bin.latitude),
                longitude=float(pickup.bin.longitude),
                bin_code=pickup.bin.bin_code,
                address=pickup.bin.location,
            ))
        return candidates

    @staticmethod
    def _resolve_start(driver: Driver, start_location: Optional[StartLocation]) -> Location:
        if start_location is not None:
            if isinstance(start_location, Location):
                return start_location
            try:
                return Location(*start_location)
            except (TypeError, ValueError) as e:
                raise ValidationFailure(f"Invalid start location: {e}")
        if driver.has_location:
            return Location(*driver.coordinates)
        return Location(optimizer_settings.DEFAULT_START_LATITUDE, optimizer_settings.DEFAULT_START_LONGITUDE)

    @staticmethod
    def _travel_minutes(distance_km: float) -> float:
        return distance_km / optimizer_settings.AVERAGE_SPEED_KMH * 60

    def _estimate_arrivals(self, ordered: List[StopCandidate], now: datetime) -> List[datetime]:
        """First stop at ``now``; each next one after the leg's drive plus the service time."""
        arrivals = []
        eta = now
        for index, candidate in enumerate(ordered):
            if index > 0:
                leg = DistanceMatrixBuilder.path_length([
                    ordered[index - 1].location.as_tuple(), candidate.location.as_tuple()
                ])
                eta = eta + timedelta(
                    minutes=self._travel_minutes(leg) + optimizer_settings.SERVICE_TIME_PER_STOP_MINUTES
                )
            arrivals.append(eta)
        return arrivals
