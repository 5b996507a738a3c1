"""Booking router - FastAPI endpoints for the booking lifecycle"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_person_id
from ...database import get_db
from ...errors import ValidationError
from ...models import BOOKING_STATUSES
from ...services.billing_service import get_billing_client
from ...services.notification_service import get_notifier
from .schemas import BookingActionRequest, BookingCreate, BookingResponse, booking_to_response
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, billing=get_billing_client(), notifier=get_notifier())


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    person_id: str = Depends(get_current_person_id),
    service: BookingService = Depends(get_booking_service),
):
    """Book a slot; the booking stays pending until the provider confirms"""
    return booking_to_response(service.create_booking(person_id, data))


@router.get("", response_model=list[BookingResponse])
async def list_bookings(
    status: Optional[str] = Query(None),
    scope: Optional[str] = Query(None, description="upcoming or past"),
    person_id: str = Depends(get_current_person_id),
    service: BookingService = Depends(get_booking_service),
):
    """Bookings where the current person is client or provider"""
    if status and status not in BOOKING_STATUSES:
        raise ValidationError(f"Unknown booking status '{status}'", {"allowed": list(BOOKING_STATUSES)})
    if scope and scope not in ("upcoming", "past"):
        raise ValidationError("scope must be 'upcoming' or 'past'", {"scope": scope})
    bookings = service.list_bookings(
        person_id, status=status, upcoming=scope == "upcoming", past=scope == "past"
    )
    return [booking_to_response(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    person_id: str = Depends(get_current_person_id),
    service: BookingService = Depends(get_booking_service),
):
    return booking_to_response(service.get_booking(booking_id, person_id))


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: str,
    person_id: str = Depends(get_current_person_id),
    service: BookingService = Depends(get_booking_service),
):
    return booking_to_response(service.confirm_booking(booking_id, person_id))


@router.post("/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: str,
    data: Optional[BookingActionRequest] = None,
    person_id: str = Depends(get_current_person_id),
    service: BookingService = Depends(get_booking_service),
):
    """Reject a pending booking and release its slot"""
    reason = data.reason if data else None
    return booking_to_response(service.reject_booking(booking_id, person_id, reason))


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    data: BookingActionRequest,
    person_id: str = Depends(get_current_person_id),
    service: BookingService = Depends(get_booking_service),
):
    """Cancel a confirmed booking; a reason is required"""
    return booking_to_response(service.cancel_booking(booking_id, person_id, data.reason))


@router.post("/{booking_id}/no-show", response_model=BookingResponse)
async def mark_no_show(
    booking_id: str,
    person_id: str = Depends(get_current_person_id),
    service: BookingService = Depends(get_booking_service),
):
    """Mark the other party as absent once the no-show delay has passed"""
    return booking_to_response(service.mark_no_show(booking_id, person_id))
