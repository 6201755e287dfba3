"""
This file contains custom, application-specific exceptions.

Every booking-domain error carries the HTTP status and a short machine
readable code; main.py registers a single handler that renders them.
"""

class BookingError(Exception):
    """Base class for all booking-domain errors."""
    status_code: int = 400
    code: str = "booking_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(BookingError):
    """Raised when input is malformed before any backend call."""
    status_code = 400
    code = "validation_error"


class UnauthorizedRoleError(BookingError):
    """Raised when a user's role does not permit them to perform an action."""
    status_code = 403
    code = "forbidden"


class NotFoundError(BookingError):
    """Raised when a referenced tutor, request, lesson or subject does not exist."""
    status_code = 404
    code = "not_found"


class InvalidTransitionError(BookingError):
    """Raised when a status change is not reachable from the current status."""
    status_code = 409
    code = "invalid_transition"


class SlotUnavailableError(BookingError):
    """Raised when the requested interval is not a free slot anymore."""
    status_code = 409
    code = "slot_unavailable"


class InvalidDateError(BookingError):
    """Raised when a date is malformed or outside the booking window."""
    status_code = 422
    code = "invalid_date"


class PersistenceError(BookingError):
    """Raised when a write to the database fails."""
    status_code = 503
    code = "persistence_error"
