"""
Error kinds raised by the dispatch engine.

Every error carries a human-readable message and the HTTP-style status code a
caller layer would map it to.
"""


class DispatchError(Exception):
    status_code = 500
    default_message = "Dispatch operation failed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(DispatchError):
    """A referenced bin, driver, pickup or route does not exist."""
    status_code = 404
    default_message = "Resource not found"


class ForbiddenError(DispatchError):
    """The requester lacks permission for the target resource."""
    status_code = 403
    default_message = "Access denied"


class InvalidStateError(DispatchError):
    """The operation is not valid for the current status of the resource."""
    status_code = 400
    default_message = "Operation not allowed in the current state"


class ValidationFailure(DispatchError):
    """Malformed input."""
    status_code = 400
    default_message = "Invalid input"


class ExternalServiceError(DispatchError):
    """
    The mapping collaborator is unreachable or returned an error.

    Recovered inside the route optimizer and never surfaced to callers.
    """
    status_code = 502
    default_message = "External service unavailable"
