"""Failures raised by the allocator and the session registry.

Each error carries the HTTP status the API answers with, so routes never
have to translate them by hand.
"""


class ReservationError(Exception):
    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.message}


class InvalidInput(ReservationError):
    status_code = 400


class Unauthorized(ReservationError):
    status_code = 401


class NotFound(ReservationError):
    status_code = 404


class Conflict(ReservationError):
    """Uniqueness violation; ``reason`` says which rule was hit."""
    status_code = 400

    SLOT_EXISTS = 'slot_exists'
    SLOT_BOOKED = 'slot_booked'
    SLOT_HAS_BOOKING = 'slot_has_booking'

    def __init__(self, message, reason):
        super().__init__(message)
        self.reason = reason

    def to_dict(self):
        return {'error': self.message, 'reason': self.reason}


class Unavailable(ReservationError):
    status_code = 503
