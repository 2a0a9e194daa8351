"""
Great-circle distance utilities.

This module provides the haversine distance used by the driver locator, the
route heuristic and the stop ETA calculation, in scalar, one-to-many and
matrix forms.
"""
from typing import List, Sequence, Tuple
import logging

import numpy as np

from route_optimizer.core.constants import EARTH_RADIUS_KM

logger = logging.getLogger(__name__)

Coordinates = Tuple[float, float]


class DistanceMatrixBuilder:
    """
    Builder class for great-circle distances and distance matrices.
    """

    @staticmethod
    def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """
        Calculate the great circle distance between two points
        on the earth (specified in decimal degrees).

        Args:
            lat1, lon1: Coordinates of first point
            lat2, lon2: Coordinates of second point

        Returns:
            Distance in kilometers
        """
        # Convert decimal degrees to radians
        lat1, lon1, lat2, lon2 = map(np.radians, [float(lat1), float(lon1), float(lat2), float(lon2)])

        # Haversine formula
        dlon = lon2 - lon1
        dlat = lat2 - lat1
        a = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
        c = 2 * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))

        return float(c * EARTH_RADIUS_KM)

    @staticmethod
    def distances_from(origin: Coordinates, points: Sequence[Coordinates]) -> np.ndarray:
        """
        Distances in km from one origin to each of ``points``.

        Returns:
            1D numpy array, same order as ``points``.
        """
        if len(points) == 0:
            return np.array([], dtype=float)

        coords = np.radians(np.asarray(points, dtype=float))
        lat1, lon1 = np.radians(float(origin[0])), np.radians(float(origin[1]))
        lat2, lon2 = coords[:, 0], coords[:, 1]

        a = np.sin((lat2 - lat1) / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin((lon2 - lon1) / 2) ** 2
        return 2 * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0))) * EARTH_RADIUS_KM

    @staticmethod
    def create_distance_matrix(points: Sequence[Coordinates]) -> np.ndarray:
        """
        Create a symmetric N x N haversine distance matrix in km.

        Args:
            points: Sequence of (latitude, longitude) pairs.

        Returns:
            2D numpy array with a zero diagonal.
        """
        num_points = len(points)
        if num_points == 0:
            return np.array([]).reshape(0, 0)

        matrix = np.vstack([
            DistanceMatrixBuilder.distances_from(point, points) for point in points
        ])
        np.fill_diagonal(matrix, 0.0)
        return matrix

    @staticmethod
    def path_length(points: List[Coordinates]) -> float:
        """Sum of consecutive great-circle legs along ``points``, in km."""
        total = 0.0
        for (lat1, lon1), (lat2, lon2) in zip(points, points[1:]):
            total += DistanceMatrixBuilder.haversine_distance(lat1, lon1, lat2, lon2)
        return total


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return DistanceMatrixBuilder.haversine_distance(lat1, lon1, lat2, lon2)
