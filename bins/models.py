from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class Bin(models.Model):
    """
    A waste container with a fill-level sensor.
    """
    STATUS_EMPTY = 'EMPTY'
    STATUS_LOW = 'LOW'
    STATUS_MEDIUM = 'MEDIUM'
    STATUS_HIGH = 'HIGH'
    STATUS_FULL = 'FULL'
    STATUS_MAINTENANCE = 'MAINTENANCE'
    STATUS_OUT_OF_SERVICE = 'OUT_OF_SERVICE'

    STATUS_CHOICES = [
        (STATUS_EMPTY, 'Empty'),
        (STATUS_LOW, 'Low'),
        (STATUS_MEDIUM, 'Medium'),
        (STATUS_HIGH, 'High'),
        (STATUS_FULL, 'Full'),
        (STATUS_MAINTENANCE, 'Maintenance'),
        (STATUS_OUT_OF_SERVICE, 'Out of Service'),
    ]

    # Statuses set by operators; a sensor reading does not override them.
    MANUAL_STATUSES = (STATUS_MAINTENANCE, STATUS_OUT_OF_SERVICE)

    bin_code = models.CharField(max_length=32, unique=True)
    location = models.CharField(max_length=255, help_text="Street address of the bin")
    latitude = models.DecimalField(max_digits=9, decimal_places=6)
    longitude = models.DecimalField(max_digits=9, decimal_places=6)
    capacity = models.PositiveIntegerField(default=240, help_text="Capacity in litres")
    current_level = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=0,
        help_text="Fill level in percent (0-100)"
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_EMPTY)
    last_emptied = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='bins'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['bin_code']),
            models.Index(fields=['is_active', 'current_level']),
        ]

    def __str__(self):
        return f"{self.bin_code} ({self.status}, {self.current_level}%)"

    @staticmethod
    def status_for_level(level):
        """Map a fill level in percent to the derived bin status."""
        level = float(level)
        if level <= 20:
            return Bin.STATUS_EMPTY
        if level <= 40:
            return Bin.STATUS_LOW
        if level <= 60:
            return Bin.STATUS_MEDIUM
        if level <= 80:
            return Bin.STATUS_HIGH
        return Bin.STATUS_FULL

    @property
    def fill_level(self):
        return float(self.current_level)

    @property
    def coordinates(self):
        return float(self.latitude), float(self.longitude)

    def apply_fill_level(self, level):
        """Set the fill level and re-derive the status. Does not save."""
        if level is None or not 0 <= float(level) <= 100:
            raise ValidationError(f"Fill level must be between 0 and 100, got {level}.")
        self.current_level = level
        if self.status not in self.MANUAL_STATUSES:
            self.status = self.status_for_level(level)

    def mark_emptied(self, emptied_at=None):
        self.current_level = 0
        self.status = self.STATUS_EMPTY
        self.last_emptied = emptied_at or timezone.now()
        self.save(update_fields=['current_level', 'status', 'last_emptied', 'updated_at'])
