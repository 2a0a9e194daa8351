import unittest
from decimal import Decimal

import numpy as np

from route_optimizer.core.distance_matrix import DistanceMatrixBuilder, haversine_distance


class TestDistanceMatrixBuilder(unittest.TestCase):
    """Test cases for the great-circle helpers."""

    def setUp(self):
        self.points = [(0.0, 0.0), (1.0, 1.0), (2.0, 2.0), (8.4840, -13.2299)]

    def test_haversine_distance(self):
        # Approximate distance in km between these coordinates is ~157 km
        self.assertAlmostEqual(haversine_distance(0.0, 0.0, 1.0, 1.0), 157.2, delta=1.0)
        self.assertEqual(haversine_distance(1.0, 1.0, 1.0, 1.0), 0.0)
        # One degree of latitude
        self.assertAlmostEqual(haversine_distance(0.0, 0.0, 1.0, 0.0), 111.19, delta=0.01)

    def test_haversine_accepts_decimals_and_strings(self):
        self.assertAlmostEqual(
            haversine_distance(Decimal('8.484'), '-13.2299', 8.494, -13.2299),
            haversine_distance(8.484, -13.2299, 8.494, -13.2299)
        )

    def test_distances_from_matches_scalar_form(self):
        origin = (8.4840, -13.2299)
        distances = DistanceMatrixBuilder.distances_from(origin, self.points)

        self.assertEqual(distances.shape, (4,))
        for distance, (lat, lng) in zip(distances, self.points):
            self.assertAlmostEqual(distance, haversine_distance(origin[0], origin[1], lat, lng), places=6)
        self.assertEqual(len(DistanceMatrixBuilder.distances_from(origin, [])), 0)

    def test_create_distance_matrix(self):
        matrix = DistanceMatrixBuilder.create_distance_matrix(self.points)

        self.assertEqual(matrix.shape, (4, 4))
        np.testing.assert_array_equal(np.diag(matrix), np.zeros(4))
        np.testing.assert_allclose(matrix, matrix.T)
        self.assertTrue((matrix >= 0).all())
        self.assertAlmostEqual(matrix[0, 1], 157.2, delta=1.0)

    def test_create_distance_matrix_empty(self):
        self.assertEqual(DistanceMatrixBuilder.create_distance_matrix([]).shape, (0, 0))

    def test_path_length(self):
        path = [(0.0, 0.0), (1.0, 0.0), (2.0, 0.0)]
        self.assertAlmostEqual(DistanceMatrixBuilder.path_length(path), 2 * 111.19, delta=0.05)
        self.assertEqual(DistanceMatrixBuilder.path_length([(0.0, 0.0)]), 0.0)


if __name__ == '__main__':
    unittest.main()
