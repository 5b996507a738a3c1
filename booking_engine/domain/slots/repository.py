"""Slot repository - storage operations behind the slot store contract.

Mutating methods never commit; callers own the transaction boundary so a
claim and its booking insert (or a delete and its regeneration) land
together.
"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import and_, delete, or_, update
from sqlalchemy.orm import Session

from ...models import TimeSlot


class SlotRepository:
    """Repository for time slot database operations"""

    @staticmethod
    def get_slot(db: Session, slot_id: str) -> Optional[TimeSlot]:
        return db.query(TimeSlot).filter(TimeSlot.id == slot_id).first()

    @staticmethod
    def list_slots(
        db: Session,
        owner_id: Optional[str] = None,
        definition_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: Optional[str] = None,
        location_type: Optional[str] = None,
    ) -> list[TimeSlot]:
        """Slots filtered by owner/definition/start-instant window/status"""
        query = db.query(TimeSlot)

        if owner_id:
            query = query.filter(TimeSlot.owner_id == owner_id)
        if definition_id:
            query = query.filter(TimeSlot.definition_id == definition_id)
        if start:
            query = query.filter(TimeSlot.start_time >= start)
        if end:
            query = query.filter(TimeSlot.start_time <= end)
        if status:
            query = query.filter(TimeSlot.status == status)

        slots = query.order_by(TimeSlot.start_time.asc()).all()

        # JSON array containment is not portable across backends
        if location_type:
            slots = [s for s in slots if location_type in (s.location_types or [])]
        return slots

    @staticmethod
    def get_next_available_slot(
        db: Session, owner_id: str, after: datetime, location_type: Optional[str] = None
    ) -> Optional[TimeSlot]:
        query = (
            db.query(TimeSlot)
            .filter(
                TimeSlot.owner_id == owner_id,
                TimeSlot.status == "available",
                TimeSlot.start_time >= after,
            )
            .order_by(TimeSlot.start_time.asc())
        )
        if not location_type:
            return query.first()
        for slot in query.yield_per(100):
            if location_type in (slot.location_types or []):
                return slot
        return None

    @staticmethod
    def occupied_intervals(
        db: Session, owner_id: str, start: datetime, end: datetime
    ) -> list[tuple[datetime, datetime]]:
        """(start, end) of every slot of the owner overlapping ``[start, end]``, any status"""
        rows = (
            db.query(TimeSlot.start_time, TimeSlot.end_time)
            .filter(
                TimeSlot.owner_id == owner_id,
                TimeSlot.end_time > start,
                TimeSlot.start_time <= end,
            )
            .all()
        )
        return [(row[0], row[1]) for row in rows]

    @staticmethod
    def insert_slots(db: Session, slots: Iterable[TimeSlot]) -> int:
        slots = list(slots)
        db.add_all(slots)
        db.flush()
        return len(slots)

    @staticmethod
    def delete_available_slots(
        db: Session, definition_id: str, from_time: Optional[datetime] = None
    ) -> int:
        """Delete unbooked slots of a definition; booked slots never match"""
        query = db.query(TimeSlot).filter(
            TimeSlot.definition_id == definition_id,
            TimeSlot.status == "available",
        )
        if from_time is not None:
            query = query.filter(TimeSlot.start_time >= from_time)
        return query.delete(synchronize_session=False)

    @staticmethod
    def delete_available_overlapping(
        db: Session,
        definition_id: str,
        intervals: list[tuple[datetime, datetime]],
        not_before: datetime,
    ) -> int:
        """Delete unbooked slots starting at/after ``not_before`` that overlap any interval"""
        if not intervals:
            return 0
        overlap = or_(
            *[
                and_(TimeSlot.start_time < block_end, TimeSlot.end_time > block_start)
                for block_start, block_end in intervals
            ]
        )
        return (
            db.query(TimeSlot)
            .filter(
                TimeSlot.definition_id == definition_id,
                TimeSlot.status == "available",
                TimeSlot.start_time >= not_before,
                overlap,
            )
            .delete(synchronize_session=False)
        )

    @staticmethod
    def delete_stale_available(db: Session, ended_before: datetime) -> int:
        return (
            db.query(TimeSlot)
            .filter(TimeSlot.status == "available", TimeSlot.end_time < ended_before)
            .delete(synchronize_session=False)
        )

    @staticmethod
    def claim_slot(db: Session, slot_id: str, booking_id: str) -> bool:
        """Compare-and-set available → booked; False when the slot was not available"""
        result = db.execute(
            update(TimeSlot)
            .where(TimeSlot.id == slot_id, TimeSlot.status == "available")
            .values(status="booked", booking_id=booking_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def release_slot(db: Session, slot_id: str, booking_id: str) -> bool:
        """booked → available, only while the slot still points at ``booking_id``"""
        result = db.execute(
            update(TimeSlot)
            .where(
                TimeSlot.id == slot_id,
                TimeSlot.status == "booked",
                TimeSlot.booking_id == booking_id,
            )
            .values(status="available", booking_id=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def delete_available_slot(db: Session, slot_id: str) -> bool:
        result = db.execute(
            delete(TimeSlot)
            .where(TimeSlot.id == slot_id, TimeSlot.status == "available")
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
