"""Slot discovery service - read side of the slot store"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...errors import NotFound, ValidationError
from ...models import LOCATION_TYPES, SLOT_STATUSES, TimeSlot
from ...shared.time_utils import to_naive_utc, utcnow
from .repository import SlotRepository

logger = logging.getLogger(__name__)


class SlotService:
    """Service layer for slot queries"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.repo = SlotRepository()
        self.clock = clock

    def get_slot(self, slot_id: str) -> TimeSlot:
        slot = self.repo.get_slot(self.db, slot_id)
        if not slot:
            raise NotFound("Time slot not found", {"slot_id": slot_id})
        return slot

    def list_slots(
        self,
        owner_id: Optional[str] = None,
        definition_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: Optional[str] = None,
        location_type: Optional[str] = None,
    ) -> list[TimeSlot]:
        if not owner_id and not definition_id:
            raise ValidationError("ownerId or definitionId is required")
        if status and status not in SLOT_STATUSES:
            raise ValidationError(f"Unknown slot status '{status}'", {"allowed": list(SLOT_STATUSES)})
        if location_type and location_type not in LOCATION_TYPES:
            raise ValidationError(
                f"Unknown location type '{location_type}'", {"allowed": list(LOCATION_TYPES)}
            )

        start = to_naive_utc(start) if start else None
        end = to_naive_utc(end) if end else None
        if start and end and end < start:
            raise ValidationError("end must not be before start")

        return self.repo.list_slots(
            self.db,
            owner_id=owner_id,
            definition_id=definition_id,
            start=start,
            end=end,
            status=status,
            location_type=location_type,
        )

    def get_next_available_slot(self, owner_id: str, location_type: Optional[str] = None) -> TimeSlot:
        slot = self.repo.get_next_available_slot(self.db, owner_id, self.clock(), location_type)
        if not slot:
            raise NotFound("No available time slot", {"owner_id": owner_id})
        return slot
