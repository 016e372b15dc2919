# backend/salon_booking/errors.py
"""
Domain errors of the booking core.

Every error carries a stable machine code (the widget switches on it), an
HTTP status and a user-facing message. main.py turns them into
{"error": code, "message": ...} responses.

Classes:
- validation     → 400 (VALIDATION_FAILED)
- not-found      → 404 (TENANT/SERVICE/STAFF/VARIANT/BOOKING_NOT_FOUND)
- policy         → 400 (INVALID_DATE, TOO_LATE, SLOT_UNAVAILABLE, WRONG_STATUS, ...)
- contention     → 409/410 (SLOT_TAKEN, HOLD_EXPIRED)
- single-use     → 409 (ALREADY_RESCHEDULED)
"""


class BookingError(Exception):
    code = "BOOKING_ERROR"
    status_code = 400
    message = "Request could not be processed"

    def __init__(self, message: str | None = None, code: str | None = None):
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


# ── Validation ───────────────────────────────────────────────────────────


class ValidationFailed(BookingError):
    code = "VALIDATION_FAILED"
    message = "Invalid request"


# ── Not found ────────────────────────────────────────────────────────────


class NotFound(BookingError):
    status_code = 404


class TenantNotFound(NotFound):
    code = "TENANT_NOT_FOUND"
    message = "Salon not found"


class ServiceNotFound(NotFound):
    code = "SERVICE_NOT_FOUND"
    message = "Service not found or not bookable online"


class VariantNotFound(NotFound):
    code = "VARIANT_NOT_FOUND"
    message = "Service option not found"


class StaffNotFound(NotFound):
    code = "STAFF_NOT_FOUND"
    message = "Staff member not found"


class BookingNotFound(NotFound):
    code = "BOOKING_NOT_FOUND"
    message = "Booking not found"


# ── Policy ───────────────────────────────────────────────────────────────


class InvalidDate(BookingError):
    code = "INVALID_DATE"
    message = "This date is outside the booking window"


class TooLate(BookingError):
    code = "TOO_LATE"
    message = "This booking can no longer be changed"


class SlotUnavailable(BookingError):
    code = "SLOT_UNAVAILABLE"
    message = "The salon is not open at this time"


class WrongStatus(BookingError):
    code = "WRONG_STATUS"
    message = "Only confirmed bookings can be rescheduled"


class AlreadyCancelled(BookingError):
    code = "ALREADY_CANCELLED"
    message = "This booking is already cancelled"


class PastBooking(BookingError):
    code = "PAST_BOOKING"
    message = "Past bookings cannot be cancelled"


class InvalidStatusTransition(BookingError):
    code = "INVALID_STATUS_TRANSITION"
    message = "Status change not allowed"


# ── Contention ───────────────────────────────────────────────────────────


class SlotTaken(BookingError):
    code = "SLOT_TAKEN"
    status_code = 409
    message = "This time was just taken. Please choose another slot."


class HoldExpired(BookingError):
    code = "HOLD_EXPIRED"
    status_code = 410
    message = "Your reservation has expired. Please choose a time again."


class AlreadyRescheduled(BookingError):
    code = "ALREADY_RESCHEDULED"
    status_code = 409
    message = "This booking has already been rescheduled once"


# ── Access ───────────────────────────────────────────────────────────────


class CaptchaFailed(BookingError):
    code = "CAPTCHA_FAILED"
    message = "Human verification failed. Please try again."


class RateLimitExceeded(BookingError):
    code = "RATE_LIMIT_EXCEEDED"
    status_code = 429
    message = "Too many requests. Please try again later."

    def __init__(self, retry_after: int = 60):
        super().__init__()
        self.retry_after = retry_after


class Unauthorized(BookingError):
    code = "UNAUTHORIZED"
    status_code = 401
    message = "Unauthorized"
