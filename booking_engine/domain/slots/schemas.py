"""Slot domain schemas"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel


class SlotResponse(BaseModel):
    """Schema for time slot response"""

    id: str
    ownerId: str
    definitionId: Optional[str]
    slotDate: date
    startTime: datetime
    endTime: datetime
    durationMinutes: int
    locationTypes: list[str]
    status: str
    priceOverride: Optional[dict] = None


def slot_to_response(slot) -> SlotResponse:
    return SlotResponse(
        id=slot.id,
        ownerId=slot.owner_id,
        definitionId=slot.definition_id,
        slotDate=slot.slot_date,
        startTime=slot.start_time,
        endTime=slot.end_time,
        durationMinutes=int((slot.end_time - slot.start_time).total_seconds() // 60),
        locationTypes=slot.location_types or [],
        status=slot.status,
        priceOverride=slot.price_override,
    )
