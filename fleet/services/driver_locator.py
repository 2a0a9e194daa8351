"""
Proximity search over eligible drivers.

A driver is eligible when it is ONLINE (or the requested status), available,
its user account is active and it has reported a location.
"""
import logging
import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from dispatch_core.exceptions import ValidationFailure
from fleet.models import Driver
from route_optimizer.core.constants import KM_PER_DEGREE_LATITUDE
from route_optimizer.core.distance_matrix import DistanceMatrixBuilder

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_RADIUS_KM = 10.0
DEFAULT_SEARCH_LIMIT = 20


@dataclass
class NearbyDriver:
    driver: Driver
    distance_km: float


class DriverLocator:
    """
    Finds the drivers closest to a coordinate.
    """

    def eligible_drivers(self, status=Driver.STATUS_ONLINE):
        return (
            Driver.objects
            .select_related('user', 'vehicle')
            .filter(
                status=status,
                is_available=True,
                user__is_active=True,
                current_latitude__isnull=False,
                current_longitude__isnull=False,
            )
            .order_by('pk')
        )

    def find_nearest(self, latitude: float, longitude: float) -> Optional[NearbyDriver]:
        """
        Return the eligible driver closest to the coordinate.

        Ties go to the first driver in primary-key order, because numpy's
        argmin returns the first minimum.

        Returns:
            NearbyDriver, or None when no driver is eligible.
        """
        candidates = list(self.eligible_drivers())
        if not candidates:
            logger.info(f"No eligible driver near ({latitude}, {longitude})")
            return None

        distances = DistanceMatrixBuilder.distances_from(
            (latitude, longitude),
            [driver.coordinates for driver in candidates]
        )
        best = int(np.argmin(distances))
        nearest = NearbyDriver(driver=candidates[best], distance_km=float(distances[best]))
        logger.debug(f"Nearest driver to ({latitude}, {longitude}) is {nearest.driver.pk} at {nearest.distance_km:.2f} km")
        return nearest

    def find_within_radius(
        self,
        latitude: float,
        longitude: float,
        radius_km: float = DEFAULT_SEARCH_RADIUS_KM,
        limit: int = DEFAULT_SEARCH_LIMIT,
        status: str = Driver.STATUS_ONLINE
    ) -> List[NearbyDriver]:
        """
        Return eligible drivers within ``radius_km``, closest first.

        A bounding box narrows the query; the exact great-circle distance
        decides membership, so no result is ever farther than the radius.
        """
        if radius_km is None or radius_km <= 0:
            raise ValidationFailure("Radius must be a positive number of kilometres")
        if limit is None or limit <= 0:
            raise ValidationFailure("Limit must be a positive integer")

        latitude = float(latitude)
        longitude = float(longitude)
        lat_delta = radius_km / KM_PER_DEGREE_LATITUDE
        cos_lat = math.cos(math.radians(latitude))
        # Near the poles every longitude is within reach
        lon_delta = 180.0 if cos_lat < 1e-9 else radius_km / (KM_PER_DEGREE_LATITUDE * cos_lat)

        candidates = list(
            self.eligible_drivers(status=status).filter(
                current_latitude__gte=latitude - lat_delta,
                current_latitude__lte=latitude + lat_delta,
                current_longitude__gte=longitude - lon_delta,
                current_longitude__lte=longitude + lon_delta,
            )
        )
        if not candidates:
            return []

        distances = DistanceMatrixBuilder.distances_from(
            (latitude, longitude),
            [driver.coordinates for driver in candidates]
        )
        # Stable sort keeps primary-key order between equal distances
        order = np.argsort(distances, kind='stable')
        nearby = [
            NearbyDriver(driver=candidates[i], distance_km=round(float(distances[i]), 2))
            for i in order
            if distances[i] <= radius_km
        ]
        return nearby[:limit]
