from django.conf import settings
from django.db import models
from django.utils import timezone


class Vehicle(models.Model):
    """
    Model representing a collection truck in the fleet.
    """
    STATUS_CHOICES = [
        ('available', 'Available'),
        ('assigned', 'Assigned'),
        ('maintenance', 'Maintenance'),
        ('out_of_service', 'Out of Service')
    ]

    vehicle_id = models.CharField(max_length=20, unique=True)
    license_plate = models.CharField(max_length=20, blank=True)
    model = models.CharField(max_length=100, blank=True)
    capacity = models.PositiveIntegerField(help_text="Capacity in kilograms")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='available')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.vehicle_id} ({self.status})"

    class Meta:
        indexes = [
            models.Index(fields=['status']),
        ]


class Driver(models.Model):
    """
    Model representing a driver who collects bins.

    The linked user's ``is_active`` flag is the driver's account state.
    """
    STATUS_OFFLINE = 'OFFLINE'
    STATUS_ONLINE = 'ONLINE'
    STATUS_BUSY = 'BUSY'
    STATUS_ON_BREAK = 'ON_BREAK'

    STATUS_CHOICES = [
        (STATUS_OFFLINE, 'Offline'),
        (STATUS_ONLINE, 'Online'),
        (STATUS_BUSY, 'Busy'),
        (STATUS_ON_BREAK, 'On Break'),
    ]

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='driver_profile'
    )
    license_number = models.CharField(max_length=32, unique=True)
    phone = models.CharField(max_length=32, blank=True)
    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='drivers'
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_OFFLINE)
    is_available = models.BooleanField(default=True)

    # Location tracking
    current_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    current_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    last_location_update = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['status', 'is_available']),
        ]

    def __str__(self):
        return f"{self.display_name} ({self.status})"

    @property
    def display_name(self):
        full_name = self.user.get_full_name()
        return full_name or self.user.get_username()

    @property
    def is_account_active(self):
        return self.user.is_active

    @property
    def can_be_assigned(self):
        """Check if driver can take a new pickup."""
        return self.is_account_active and self.is_available

    @property
    def has_location(self):
        return self.current_latitude is not None and self.current_longitude is not None

    @property
    def coordinates(self):
        if not self.has_location:
            return None
        return float(self.current_latitude), float(self.current_longitude)

    def update_location(self, latitude, longitude):
        """Update the driver's current location and timestamp."""
        self.current_latitude = latitude
        self.current_longitude = longitude
        self.last_location_update = timezone.now()
        self.save(update_fields=['current_latitude', 'current_longitude', 'last_location_update', 'updated_at'])

    @property
    def location_is_stale(self):
        """Check if location data is stale (more than 30 minutes old)."""
        if not self.last_location_update:
            return True
        return (timezone.now() - self.last_location_update).total_seconds() > 1800  # 30 minutes
