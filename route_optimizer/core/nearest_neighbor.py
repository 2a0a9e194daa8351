from typing import List, Sequence, Tuple
import logging

import numpy as np

from route_optimizer.core.distance_matrix import Coordinates, DistanceMatrixBuilder

# Set up logging
logger = logging.getLogger(__name__)


class NearestNeighborSolver:
    """
    Greedy tour construction: from the current position, always visit the
    closest unvisited stop next.
    """

    @staticmethod
    def solve(start: Coordinates, stops: Sequence[Coordinates]) -> Tuple[List[int], List[float]]:
        """
        Order ``stops`` starting from ``start``.

        Ties are broken by input order, since numpy's argmin returns the first
        minimum.

        Args:
            start: (latitude, longitude) the driver sets off from.
            stops: (latitude, longitude) of each stop.

        Returns:
            A tuple of (visit order as indices into ``stops``, leg distances
            in km). The order is always a permutation of range(len(stops)) and
            leg i is the distance travelled to reach the i-th visited stop.
        """
        if not stops:
            return [], []

        # Index 0 is the start point, stop i sits at index i + 1
        matrix = DistanceMatrixBuilder.create_distance_matrix([tuple(start)] + [tuple(s) for s in stops])
        visited = np.zeros(len(stops) + 1, dtype=bool)
        visited[0] = True

        order: List[int] = []
        legs: List[float] = []
        current = 0
        while len(order) < len(stops):
            candidates = np.where(visited, np.inf, matrix[current])
            nearest = int(np.argmin(candidates))
            visited[nearest] = True
            order.append(nearest - 1)
            legs.append(float(matrix[current, nearest]))
            current = nearest

        logger.debug(f"Nearest neighbour order {order}, total {sum(legs):.2f} km")
        return order, legs
