"""
Requester role resolution.

Roles are derived from the Django user rather than stored: staff and
superusers are administrators, users with a driver profile are drivers,
everyone else is a plain user.
"""
ROLE_ADMIN = 'ADMIN'
ROLE_DRIVER = 'DRIVER'
ROLE_USER = 'USER'


def get_user_role(user):
    """
    Resolve the dispatch role of a user.

    Args:
        user: A Django user instance, or None for the system itself.

    Returns:
        One of ROLE_ADMIN, ROLE_DRIVER or ROLE_USER. The system (None) is
        treated as an administrator.
    """
    if user is None:
        return ROLE_ADMIN
    if user.is_superuser or user.is_staff:
        return ROLE_ADMIN
    if hasattr(user, 'driver_profile'):
        return ROLE_DRIVER
    return ROLE_USER


def is_admin(user):
    return get_user_role(user) == ROLE_ADMIN
