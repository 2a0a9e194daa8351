import logging

from django.utils import timezone

from dispatch_core.exceptions import ValidationFailure
from fleet.models import Driver

logger = logging.getLogger(__name__)

VALID_DRIVER_STATUSES = {choice for choice, _ in Driver.STATUS_CHOICES}


def _validate_coordinates(latitude, longitude):
    if latitude is None or longitude is None:
        raise ValidationFailure("Both latitude and longitude are required")
    if not -90 <= float(latitude) <= 90:
        raise ValidationFailure(f"Invalid latitude: {latitude}")
    if not -180 <= float(longitude) <= 180:
        raise ValidationFailure(f"Invalid longitude: {longitude}")


def update_driver_status(driver: Driver, new_status: str, latitude=None, longitude=None):
    if new_status not in VALID_DRIVER_STATUSES:
        raise ValidationFailure(f"Unknown driver status: {new_status}")

    driver.status = new_status
    update_fields = ['status', 'updated_at']
    if latitude is not None and longitude is not None:
        _validate_coordinates(latitude, longitude)
        driver.current_latitude = latitude
        driver.current_longitude = longitude
        driver.last_location_update = timezone.now()
        update_fields += ['current_latitude', 'current_longitude', 'last_location_update']
    driver.save(update_fields=update_fields)
    logger.info(f"Driver {driver.pk} status set to {new_status}")
    return driver


def update_driver_location(driver: Driver, latitude, longitude):
    _validate_coordinates(latitude, longitude)
    driver.update_location(latitude, longitude)
    return driver


def set_driver_availability(driver: Driver, is_available: bool):
    driver.is_available = is_available
    driver.save(update_fields=['is_available', 'updated_at'])
    return driver


def mark_driver_online(driver: Driver):
    return update_driver_status(driver, Driver.STATUS_ONLINE)


def mark_driver_offline(driver: Driver):
    return update_driver_status(driver, Driver.STATUS_OFFLINE)
