"""
Route Optimizer Module.

This module orders a driver's pickups into a route, using the Google
Directions API when available and a nearest-neighbour heuristic otherwise.
"""

__version__ = '0.1.0'
