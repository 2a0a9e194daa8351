"""
Container state updates.

``record_fill_level`` is the boundary the telemetry collaborator calls once
it has decoded a sensor reading; the transport itself lives elsewhere.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from bins.models import Bin
from dispatch_core.exceptions import NotFoundError, ValidationFailure

logger = logging.getLogger(__name__)


def get_bin(bin_id):
    try:
        return Bin.objects.get(pk=bin_id)
    except Bin.DoesNotExist:
        raise NotFoundError("Bin not found")


def record_fill_level(bin_code, level):
    """
    Store a new fill level for the bin identified by ``bin_code``.

    Args:
        bin_code: Identity code of the bin.
        level: Fill level in percent (0-100).

    Returns:
        The updated Bin.

    Raises:
        NotFoundError: No bin has this code.
        ValidationFailure: The level is outside 0-100.
    """
    with transaction.atomic():
        try:
            bin_obj = Bin.objects.select_for_update().get(bin_code=bin_code)
        except Bin.DoesNotExist:
            raise NotFoundError(f"Bin {bin_code} not found")

        try:
            bin_obj.apply_fill_level(level)
        except ValidationError as e:
            raise ValidationFailure(e.messages[0])

        bin_obj.save(update_fields=['current_level', 'status', 'updated_at'])

    logger.info(f"Bin {bin_code} level updated to {level}% ({bin_obj.status})")
    return bin_obj


def set_bin_status(bin_obj, status):
    """Put a bin into or out of a manual status such as MAINTENANCE."""
    valid_statuses = {choice for choice, _ in Bin.STATUS_CHOICES}
    if status not in valid_statuses:
        raise ValidationFailure(f"Unknown bin status: {status}")
    if status not in Bin.MANUAL_STATUSES:
        status = Bin.status_for_level(bin_obj.current_level)
    bin_obj.status = status
    bin_obj.save(update_fields=['status', 'updated_at'])
    return bin_obj
