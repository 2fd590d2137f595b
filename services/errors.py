"""
Error taxonomy of the reservation core.

Every error carries the HTTP status the API answers with, so the Flask layer
registers a single handler for ``ReservationError``.
"""


class ReservationError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SlotUnavailableError(ReservationError):
    """The slot was consumed or removed before this booking could commit.

    Routine, not exceptional: callers should re-list open slots.
    """
    status_code = 409


class NotFoundError(ReservationError, LookupError):
    status_code = 404


class PermissionDeniedError(ReservationError, PermissionError):
    status_code = 403


class InvalidStateError(ReservationError):
    status_code = 409


class ValidationError(ReservationError, ValueError):
    status_code = 400
