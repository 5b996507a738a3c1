"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

LocationType = Literal["video", "phone", "in-person"]


class FormResponseData(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)


class BookingCreate(BaseModel):
    """Schema for creating a booking against a slot"""

    slot: str
    locationType: Optional[LocationType] = None
    reason: Optional[str] = Field(default=None, max_length=500)
    formResponses: Optional[FormResponseData] = None


class BookingActionRequest(BaseModel):
    """Reason attached to reject/cancel/no-show actions"""

    reason: Optional[str] = Field(default=None, max_length=500)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v):
        if v is None:
            return v
        return v.strip() or None


class BookingResponse(BaseModel):
    """Schema for booking response"""

    id: str
    clientId: str
    providerId: str
    slotId: Optional[str]
    locationType: str
    reason: Optional[str]
    status: str
    bookedAt: datetime
    confirmedAt: Optional[datetime]
    scheduledAt: datetime
    durationMinutes: int
    priceAmount: Optional[int]
    currency: Optional[str]
    rejectionReason: Optional[str]
    cancellationReason: Optional[str]
    cancelledBy: Optional[str]
    cancelledAt: Optional[datetime]
    cancelledWithinThreshold: Optional[bool]
    noShowMarkedBy: Optional[str]
    noShowMarkedAt: Optional[datetime]
    completedAt: Optional[datetime]
    formResponses: Optional[dict]
    invoiceId: Optional[str]


def booking_to_response(booking) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        clientId=booking.client_id,
        providerId=booking.provider_id,
        slotId=booking.slot_id,
        locationType=booking.location_type,
        reason=booking.reason,
        status=booking.status,
        bookedAt=booking.booked_at,
        confirmedAt=booking.confirmed_at,
        scheduledAt=booking.scheduled_at,
        durationMinutes=booking.duration_minutes,
        priceAmount=booking.price_amount,
        currency=booking.currency,
        rejectionReason=booking.rejection_reason,
        cancellationReason=booking.cancellation_reason,
        cancelledBy=booking.cancelled_by,
        cancelledAt=booking.cancelled_at,
        cancelledWithinThreshold=booking.cancelled_within_threshold,
        noShowMarkedBy=booking.no_show_marked_by,
        noShowMarkedAt=booking.no_show_marked_at,
        completedAt=booking.completed_at,
        formResponses=booking.form_responses,
        invoiceId=booking.invoice_id,
    )
