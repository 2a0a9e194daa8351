from django.conf import settings
from django.db import models
from django.db.models import Q

from bins.models import Bin
from fleet.models import Driver
from pickups.constants import (
    PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH, PRIORITY_URGENT, DEFAULT_PICKUP_PRIORITY
)


class Pickup(models.Model):
    STATUS_SCHEDULED = 'SCHEDULED'
    STATUS_IN_PROGRESS = 'IN_PROGRESS'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_CANCELLED = 'CANCELLED'

    STATUS_CHOICES = [
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    ACTIVE_STATUSES = (STATUS_SCHEDULED, STATUS_IN_PROGRESS)
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_CANCELLED)

    # Forward-only state machine; staying in the same status is handled by the service
    ALLOWED_TRANSITIONS = {
        STATUS_SCHEDULED: {STATUS_IN_PROGRESS, STATUS_CANCELLED},
        STATUS_IN_PROGRESS: {STATUS_COMPLETED, STATUS_CANCELLED},
        STATUS_COMPLETED: set(),
        STATUS_CANCELLED: set(),
    }

    PRIORITY_CHOICES = [
        (PRIORITY_LOW, 'Low'),
        (PRIORITY_MEDIUM, 'Medium'),
        (PRIORITY_HIGH, 'High'),
        (PRIORITY_URGENT, 'Urgent'),
    ]

    TYPE_SCHEDULED = 'SCHEDULED'
    TYPE_ON_DEMAND = 'ON_DEMAND'
    TYPE_EMERGENCY = 'EMERGENCY'

    TYPE_CHOICES = [
        (TYPE_SCHEDULED, 'Scheduled'),
        (TYPE_ON_DEMAND, 'On Demand'),
        (TYPE_EMERGENCY, 'Emergency'),
    ]

    bin = models.ForeignKey(Bin, on_delete=models.PROTECT, related_name='pickups')
    driver = models.ForeignKey(
        Driver,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='pickups'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_pickups'
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_SCHEDULED)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default=DEFAULT_PICKUP_PRIORITY)
    pickup_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_ON_DEMAND)

    scheduled_at = models.DateTimeField()
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default='')

    estimated_duration = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Estimated pickup duration in minutes"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['scheduled_at', '-created_at']
        indexes = [
            models.Index(fields=['status', 'scheduled_at']),
            models.Index(fields=['driver', 'status']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['bin'],
                condition=Q(status__in=['SCHEDULED', 'IN_PROGRESS']),
                name='unique_active_pickup_per_bin',
            ),
        ]

    def __str__(self):
        return f"Pickup #{self.pk} for Bin {self.bin.bin_code} ({self.status})"

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def actual_duration(self):
        """Minutes between start and completion, or None when either is unset."""
        if self.started_at is None or self.completed_at is None:
            return None
        return round((self.completed_at - self.started_at).total_seconds() / 60)

    def can_transition_to(self, new_status):
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, set())
