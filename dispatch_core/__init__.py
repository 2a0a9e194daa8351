"""
Waste collection dispatch project.

Django project package holding settings, shared error kinds and
small utilities used by the bins, fleet, pickups and route_optimizer apps.
"""

__version__ = '0.1.0'
