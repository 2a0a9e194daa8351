"""
Core data types for the route optimizer.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


@dataclass
class Location:
    """
    Represents a geographic location with latitude and longitude.
    """
    latitude: float
    longitude: float

    def __post_init__(self):
        # Convert to float if strings or Decimals were provided
        self.latitude = float(self.latitude)
        self.longitude = float(self.longitude)
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"Invalid latitude: {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValueError(f"Invalid longitude: {self.longitude}")

    def as_tuple(self):
        return self.latitude, self.longitude

    def as_param(self) -> str:
        """Format as 'latitude,longitude' for mapping API requests."""
        return f"{self.latitude},{self.longitude}"


@dataclass
class StopCandidate:
    """A pickup waiting to be placed on a route."""
    pickup_id: int
    bin_id: int
    latitude: float
    longitude: float
    bin_code: str = ''
    address: str = ''

    @property
    def location(self) -> Location:
        return Location(self.latitude, self.longitude)


@dataclass
class RouteLeg:
    """Distance and duration returned by the mapping service for one leg."""
    distance_km: float
    duration_minutes: float


@dataclass
class DirectionsResult:
    """Route returned by the mapping service."""
    distance_km: float
    duration_minutes: float
    waypoint_order: List[int] = field(default_factory=list)
    legs: List[RouteLeg] = field(default_factory=list)
    polyline: Optional[str] = None


@dataclass
class PlannedStop:
    """One stop of an optimized route."""
    pickup_id: int
    bin_id: int
    order: int
    estimated_arrival: datetime
    stop_id: Optional[int] = None
    bin_code: str = ''
    address: str = ''


@dataclass
class OptimizedRoute:
    """Data Transfer Object representing the result of a route optimization."""
    route_id: int
    driver_id: int
    total_distance: float
    estimated_duration: int
    method: str
    stops: List[PlannedStop] = field(default_factory=list)

    @property
    def pickup_order(self) -> List[int]:
        return [stop.pickup_id for stop in self.stops]
