from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone

from bins.models import Bin
from fleet.models import Driver
from pickups.models import Pickup

User = get_user_model()


def make_user(username, **extra):
    extra.setdefault('email', f"{username}@example.com")
    return User.objects.create_user(username=username, password='secret', **extra)


def make_bin(code, latitude=8.4840, longitude=-13.2299, level=0, owner=None, **extra):
    bin_obj = Bin(
        bin_code=code,
        location=f"{code} street",
        latitude=latitude,
        longitude=longitude,
        owner=owner,
        **extra
    )
    bin_obj.apply_fill_level(level)
    bin_obj.save()
    return bin_obj


def make_driver(username, latitude=None, longitude=None, status=Driver.STATUS_ONLINE, phone="+23276123456", **extra):
    return Driver.objects.create(
        user=make_user(username),
        license_number=f"LIC-{username}",
        phone=phone,
        status=status,
        current_latitude=latitude,
        current_longitude=longitude,
        **extra
    )


def make_pickup(bin_obj, driver=None, status=Pickup.STATUS_SCHEDULED, scheduled_in=timedelta(hours=1), **extra):
    extra.setdefault('created_by', bin_obj.owner)
    return Pickup.objects.create(
        bin=bin_obj,
        driver=driver,
        status=status,
        scheduled_at=timezone.now() + scheduled_in,
        **extra
    )
