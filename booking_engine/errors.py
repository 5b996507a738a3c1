"""
Typed failures raised by the scheduling engine.

Every error carries a stable ``code``, a human readable ``message`` and a
``details`` dict naming the slot, booking or rule involved, so adapters can
render an actionable response without parsing strings.
"""

from typing import Any, Optional


class SchedulingError(Exception):
    """Base class for all engine failures"""

    code = "scheduling_error"
    status_code = 400

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(SchedulingError):
    """Malformed input, rejected before any storage access"""

    code = "validation_error"
    status_code = 422


class NotFound(SchedulingError):
    code = "not_found"
    status_code = 404


class Forbidden(SchedulingError):
    code = "forbidden"
    status_code = 403


class SlotUnavailable(SchedulingError):
    """Claim race lost or slot missing; safe to retry against a fresh slot list"""

    code = "slot_unavailable"
    status_code = 409


class OutOfBookingWindow(SchedulingError):
    """Slot start is outside [now + minAdvance, now + maxAdvance]"""

    code = "out_of_booking_window"
    status_code = 409


class IllegalTransition(SchedulingError):
    code = "illegal_transition"
    status_code = 409


class AlreadyResolved(IllegalTransition):
    """Lost the race between auto-rejection and an explicit provider action"""

    code = "already_resolved"


class NoShowTooEarly(IllegalTransition):
    code = "no_show_too_early"


class RegenerationConflict(SchedulingError):
    """Concurrent writer inserted a slot at the same owner/start instant"""

    code = "regeneration_conflict"
    status_code = 409
