"""Booking error taxonomy shared by the services and the views"""


class BookingError(Exception):
    """Base class for booking failures surfaced to callers"""
    pass


class BookingValidationError(BookingError):
    """Raised when request input is malformed; always client-fixable"""

    def __init__(self, field, message):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class SeatConflictError(BookingError):
    """Raised when one or more requested seats are already taken"""

    def __init__(self, seats, message=None):
        self.seats = sorted(seats)
        super().__init__(message or f"Seats already booked: {', '.join(self.seats)}")


class TripUnavailableError(BookingError):
    """Raised when a trip is missing, cancelled or completed"""
    pass


class BookingAlreadyCancelledError(BookingError):
    """Raised when trying to cancel already cancelled booking"""
    pass


class PersistenceTransientError(BookingError):
    """Storage timed out or was unavailable; the whole operation can be retried"""
    pass


class PersistenceFatalInconsistencyError(BookingError):
    """A compensating action failed; needs manual reconciliation"""

    def __init__(self, message, context=None):
        self.context = context or {}
        super().__init__(message)
