from datetime import timedelta
from unittest.mock import MagicMock, patch

from django.test import TestCase
from django.utils import timezone

from dispatch_core.exceptions import (
    ExternalServiceError, InvalidStateError, NotFoundError, ValidationFailure
)
from pickups.constants import PRIORITY_LOW, PRIORITY_URGENT
from pickups.models import Pickup
from pickups.tests.helpers import make_bin, make_driver, make_pickup
from route_optimizer import settings as optimizer_settings
from route_optimizer.core.constants import METHOD_MAPS_API, METHOD_NEAREST_NEIGHBOR, METHOD_SINGLE_STOP
from route_optimizer.core.distance_matrix import haversine_distance
from route_optimizer.core.types_1 import DirectionsResult, Location
from route_optimizer.models import Route, RouteStop
from route_optimizer.services.maps_service import GoogleMapsService
from route_optimizer.services.route_optimization_service import RouteOptimizationService

DEPOT = (8.4840, -13.2299)


class RouteOptimizationServiceTestCase(TestCase):

    def setUp(self):
        self.maps_service = MagicMock()
        self.maps_service.get_route.side_effect = ExternalServiceError("maps unavailable")
        self.service = RouteOptimizationService(maps_service=self.maps_service)

        self.driver = make_driver("driver", *DEPOT)
        # Due north of the depot at roughly 3.3, 1.1 and 2.2 km
        self.far = make_pickup(make_bin("FAR", 8.5140, -13.2299))
        self.near = make_pickup(make_bin("NEAR", 8.4940, -13.2299))
        self.middle = make_pickup(make_bin("MIDDLE", 8.5040, -13.2299))
        self.pickup_ids = [self.far.pk, self.near.pk, self.middle.pk]


class FallbackRouteTest(RouteOptimizationServiceTestCase):

    def test_nearest_neighbour_order_when_maps_unavailable(self):
        result = self.service.optimize_route(self.driver.pk, self.pickup_ids)

        self.assertEqual(result.method, METHOD_NEAREST_NEIGHBOR)
        self.assertEqual(result.pickup_order, [self.near.pk, self.middle.pk, self.far.pk])
        self.assertEqual(sorted(result.pickup_order), sorted(self.pickup_ids))
        self.assertGreaterEqual(result.total_distance, 0)
        self.assertAlmostEqual(result.total_distance, 3.34, delta=0.02)
        # 3.34 km at 30 km/h plus 5 minutes per stop
        self.assertEqual(result.estimated_duration, 22)
        self.assertEqual(result.driver_id, self.driver.pk)

    def test_route_stops_and_reassignment_are_persisted(self):
        result = self.service.optimize_route(self.driver.pk, self.pickup_ids)

        route = Route.objects.get(pk=result.route_id)
        self.assertEqual(route.driver, self.driver)
        self.assertEqual(route.status, Route.STATUS_PLANNED)
        self.assertEqual(route.optimization_method, METHOD_NEAREST_NEIGHBOR)
        self.assertEqual(float(route.total_distance), result.total_distance)
        self.assertEqual(route.estimated_duration, result.estimated_duration)
        self.assertTrue(route.name.startswith("Route "))
        self.assertTrue(route.name.endswith(" - driver"))

        stops = list(route.stops.order_by('stop_order'))
        self.assertEqual([s.pickup_id for s in stops], result.pickup_order)
        self.assertEqual([s.stop_order for s in stops], [1, 2, 3])
        self.assertEqual([s.stop_id for s in result.stops], [s.pk for s in stops])
        self.assertTrue(all(s.status == RouteStop.STATUS_SCHEDULED for s in stops))

        self.assertEqual(
            Pickup.objects.filter(pk__in=self.pickup_ids, driver=self.driver).count(), 3
        )

    def test_arrival_estimates(self):
        before = timezone.now()
        result = self.service.optimize_route(self.driver.pk, self.pickup_ids)
        after = timezone.now()

        first, second, third = result.stops
        self.assertTrue(before <= first.estimated_arrival <= after)

        leg_km = haversine_distance(8.4940, -13.2299, 8.5040, -13.2299)
        expected = timedelta(minutes=leg_km / 30 * 60 + 5)
        self.assertAlmostEqual(
            (second.estimated_arrival - first.estimated_arrival).total_seconds(),
            expected.total_seconds(),
            delta=1
        )
        self.assertGreater(third.estimated_arrival, second.estimated_arrival)

    def test_unexpected_maps_error_falls_back(self):
        self.maps_service.get_route.side_effect = AttributeError("'list' object has no attribute 'get'")

        with self.assertLogs('route_optimizer.services.route_optimization_service', level='ERROR'):
            result = self.service.optimize_route(self.driver.pk, self.pickup_ids)

        self.assertEqual(result.method, METHOD_NEAREST_NEIGHBOR)
        self.assertEqual(result.pickup_order, [self.near.pk, self.middle.pk, self.far.pk])
        self.assertTrue(Route.objects.filter(pk=result.route_id).exists())

    @patch('route_optimizer.services.maps_service.requests.get')
    def test_non_object_maps_payload_falls_back(self, mock_get):
        mock_get.return_value = MagicMock(status_code=200)
        mock_get.return_value.json.return_value = ["not", "a", "dict"]
        service = RouteOptimizationService(maps_service=GoogleMapsService(api_key='test-key', enabled=True))

        result = service.optimize_route(self.driver.pk, self.pickup_ids)

        self.assertEqual(result.method, METHOD_NEAREST_NEIGHBOR)
        self.assertEqual(mock_get.call_count, 1)

    def test_unconfigured_maps_client_falls_back(self):
        service = RouteOptimizationService(maps_service=GoogleMapsService(api_key='', enabled=True))

        result = service.optimize_route(self.driver.pk, self.pickup_ids)

        self.assertEqual(result.method, METHOD_NEAREST_NEIGHBOR)


class MapsRouteTest(RouteOptimizationServiceTestCase):

    def test_uses_directions_order_and_totals(self):
        self.maps_service.get_route.side_effect = None
        self.maps_service.get_route.return_value = DirectionsResult(
            distance_km=12.3456,
            duration_minutes=20.4,
            waypoint_order=[1, 0],
        )

        result = self.service.optimize_route(self.driver.pk, self.pickup_ids)

        self.assertEqual(result.method, METHOD_MAPS_API)
        # Waypoints are FAR and NEAR; the last pickup is the destination
        self.assertEqual(result.pickup_order, [self.near.pk, self.far.pk, self.middle.pk])
        self.assertEqual(result.total_distance, 12.35)
        self.assertEqual(result.estimated_duration, 35)

        kwargs = self.maps_service.get_route.call_args.kwargs
        self.assertEqual(kwargs['origin'], Location(*DEPOT))
        self.assertEqual(kwargs['destination'], Location(8.5040, -13.2299))
        self.assertEqual(kwargs['waypoints'], [Location(8.5140, -13.2299), Location(8.4940, -13.2299)])
        self.assertTrue(kwargs['optimize_waypoints'])


class SingleStopTest(RouteOptimizationServiceTestCase):

    def test_single_pickup_skips_optimization(self):
        result = self.service.optimize_route(self.driver.pk, [self.near.pk])

        self.maps_service.get_route.assert_not_called()
        self.assertEqual(result.method, METHOD_SINGLE_STOP)
        self.assertEqual(result.pickup_order, [self.near.pk])
        leg = haversine_distance(*DEPOT, 8.4940, -13.2299)
        self.assertEqual(result.total_distance, round(leg, 2))
        self.assertEqual(result.estimated_duration, round(leg / 30 * 60 + 5))

    def test_driver_without_location_starts_at_depot(self):
        nomad = make_driver("nomad")
        start = (optimizer_settings.DEFAULT_START_LATITUDE, optimizer_settings.DEFAULT_START_LONGITUDE)

        result = self.service.optimize_route(nomad.pk, [self.far.pk])

        self.assertEqual(result.total_distance, round(haversine_distance(*start, 8.5140, -13.2299), 2))

    def test_explicit_start_location(self):
        result = self.service.optimize_route(self.driver.pk, [self.far.pk], start_location=(8.5140, -13.2299))
        self.assertEqual(result.total_distance, 0.0)
        self.assertEqual(result.estimated_duration, 5)

        with self.assertRaises(ValidationFailure):
            self.service.optimize_route(self.driver.pk, [self.far.pk], start_location=(120.0, 0.0))


class OptimizeRouteErrorsTest(RouteOptimizationServiceTestCase):

    def test_empty_pickup_list(self):
        with self.assertRaises(ValidationFailure):
            self.service.optimize_route(self.driver.pk, [])

    def test_unknown_driver(self):
        with self.assertRaises(NotFoundError):
            self.service.optimize_route(999999, self.pickup_ids)

    def test_no_scheduled_pickups(self):
        Pickup.objects.filter(pk__in=self.pickup_ids).update(status=Pickup.STATUS_CANCELLED)

        with self.assertRaises(InvalidStateError):
            self.service.optimize_route(self.driver.pk, self.pickup_ids)
        self.assertFalse(Route.objects.exists())

    def test_only_scheduled_pickups_are_routed(self):
        Pickup.objects.filter(pk=self.far.pk).update(status=Pickup.STATUS_IN_PROGRESS)

        result = self.service.optimize_route(self.driver.pk, self.pickup_ids + [999999])

        self.assertEqual(sorted(result.pickup_order), sorted([self.near.pk, self.middle.pk]))


class OptimizeDriverRouteTest(RouteOptimizationServiceTestCase):

    def test_returns_none_without_scheduled_pickups(self):
        self.assertIsNone(self.service.optimize_driver_route(self.driver.pk))

    def test_routes_all_scheduled_pickups_of_the_driver(self):
        Pickup.objects.filter(pk__in=[self.far.pk, self.near.pk]).update(driver=self.driver)
        Pickup.objects.filter(pk=self.far.pk).update(priority=PRIORITY_URGENT)
        Pickup.objects.filter(pk=self.near.pk).update(priority=PRIORITY_LOW)
        self.maps_service.get_route.side_effect = None
        self.maps_service.get_route.return_value = DirectionsResult(
            distance_km=4.0, duration_minutes=8.0, waypoint_order=[0]
        )

        result = self.service.optimize_driver_route(self.driver.pk)

        self.assertEqual(sorted(result.pickup_order), sorted([self.far.pk, self.near.pk]))
        # Most urgent first, so the low-priority pickup is the destination
        kwargs = self.maps_service.get_route.call_args.kwargs
        self.assertEqual(kwargs['destination'], Location(8.4940, -13.2299))
        self.assertEqual(result.pickup_order, [self.far.pk, self.near.pk])
