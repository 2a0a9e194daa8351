from django.db import models

from bins.models import Bin
from fleet.models import Driver
from pickups.models import Pickup
from route_optimizer.core.constants import (
    METHOD_MAPS_API, METHOD_NEAREST_NEIGHBOR, METHOD_SINGLE_STOP
)


class Route(models.Model):
    """An ordered set of pickups planned for one driver."""
    STATUS_PLANNED = 'PLANNED'
    STATUS_IN_PROGRESS = 'IN_PROGRESS'
    STATUS_COMPLETED = 'COMPLETED'

    STATUS_CHOICES = [
        (STATUS_PLANNED, 'Planned'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_COMPLETED, 'Completed'),
    ]

    METHOD_CHOICES = [
        (METHOD_MAPS_API, 'Google Maps Directions'),
        (METHOD_NEAREST_NEIGHBOR, 'Nearest neighbour heuristic'),
        (METHOD_SINGLE_STOP, 'Single stop'),
    ]

    name = models.CharField(max_length=255)
    driver = models.ForeignKey(Driver, on_delete=models.CASCADE, related_name='routes')
    total_distance = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        help_text="Total distance in km"
    )
    estimated_duration = models.PositiveIntegerField(default=0, help_text="Estimated duration in minutes")
    optimization_method = models.CharField(max_length=20, choices=METHOD_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PLANNED)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.name


class RouteStop(models.Model):
    STATUS_SCHEDULED = Pickup.STATUS_SCHEDULED
    STATUS_IN_PROGRESS = Pickup.STATUS_IN_PROGRESS
    STATUS_COMPLETED = Pickup.STATUS_COMPLETED
    STATUS_CANCELLED = Pickup.STATUS_CANCELLED

    STATUS_CHOICES = Pickup.STATUS_CHOICES

    route = models.ForeignKey(Route, on_delete=models.CASCADE, related_name='stops')
    pickup = models.ForeignKey(Pickup, on_delete=models.CASCADE, related_name='route_stops')
    bin = models.ForeignKey(Bin, on_delete=models.PROTECT, related_name='route_stops')
    stop_order = models.PositiveIntegerField()
    estimated_arrival = models.DateTimeField(null=True, blank=True)
    actual_arrival = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_SCHEDULED)

    class Meta:
        ordering = ['route', 'stop_order']
        constraints = [
            models.UniqueConstraint(fields=['route', 'stop_order'], name='unique_stop_order_per_route'),
        ]

    def __str__(self):
        return f"Stop {self.stop_order} of {self.route.name}"
