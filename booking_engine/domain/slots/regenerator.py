"""
Schedule regeneration after availability changes.

Unbooked (``available``) slots at or after the effective boundary are
discarded and recreated; booked slots are never selected for deletion. The
``status = available`` predicate is evaluated by the same statement that
deletes, so a claim that commits first keeps its slot and a delete that
commits first makes the claim fail with ``SlotUnavailable``.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import SLOT_GRID_MINUTES
from ...errors import RegenerationConflict
from ...models import AvailabilityDefinition, ScheduleException
from ...shared.time_utils import ceil_to_grid, utcnow
from .generator import exception_intervals, generate_slots, overlaps
from .repository import SlotRepository

logger = logging.getLogger(__name__)

# Definition columns whose change alters which slots exist
GENERATION_FIELDS = frozenset(
    {"daily_configs", "timezone", "effective_from", "effective_to"}
)


def effective_boundary(definition, now: datetime) -> datetime:
    """Earliest instant a schedule change may alter: now + min advance, on the slot grid"""
    return ceil_to_grid(now + timedelta(minutes=definition.min_advance_minutes or 0), SLOT_GRID_MINUTES)


def generation_window_end(definition, now: datetime) -> datetime:
    return now + timedelta(days=definition.max_advance_days or 0)


class ScheduleRegenerator:
    """Keeps a definition's materialized slots in line with its rules"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.repo = SlotRepository()
        self.clock = clock

    def _load(self, definition_id: str) -> Optional[AvailabilityDefinition]:
        return (
            self.db.query(AvailabilityDefinition)
            .filter(AvailabilityDefinition.id == definition_id)
            .first()
        )

    def _exceptions(self, definition_id: str) -> list[ScheduleException]:
        return (
            self.db.query(ScheduleException)
            .filter(ScheduleException.definition_id == definition_id)
            .all()
        )

    def _commit(self, definition_id: str):
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Concurrent slot write while regenerating definition {definition_id}")
            raise RegenerationConflict(
                "Another writer created overlapping slots; retry the change",
                {"definition_id": definition_id},
            ) from e

    def _insert_missing(self, definition, start: datetime, end: datetime) -> int:
        if end < start:
            return 0
        candidates = generate_slots(definition, start, end, self._exceptions(definition.id))
        # Slots kept below the boundary (or booked) may sit off the new grid
        occupied = self.repo.occupied_intervals(self.db, definition.owner_id, start, end)
        fresh = [slot for slot in candidates if not overlaps(slot.start_time, slot.end_time, occupied)]
        return self.repo.insert_slots(self.db, fresh)

    def regenerate(self, definition_id: str, change_set: Iterable[str] = GENERATION_FIELDS) -> dict:
        """
        Re-materialize a definition's slots after a change.

        A missing or non-active definition has its available slots purged.
        Changes touching no generation field are a no-op.

        Returns:
            dict: Summary with deleted/created counts
        """
        summary = {"definition_id": definition_id, "deleted": 0, "created": 0, "skipped": False}
        definition = self._load(definition_id)

        if definition is None or definition.status != "active":
            summary["deleted"] = self.purge_available(definition_id)
            return summary

        change_set = set(change_set)
        if not change_set & GENERATION_FIELDS:
            summary["skipped"] = True
            logger.debug(f"ℹ️ Definition {definition_id} change {sorted(change_set)} needs no regeneration")
            return summary

        now = self.clock()
        boundary = effective_boundary(definition, now)
        window_end = generation_window_end(definition, now)

        summary["deleted"] = self.repo.delete_available_slots(self.db, definition_id, boundary)
        summary["created"] = self._insert_missing(definition, boundary, window_end)
        self._commit(definition_id)

        logger.info(
            f"🔄 Regenerated definition {definition_id}: "
            f"deleted={summary['deleted']} created={summary['created']} boundary={boundary.isoformat()}"
        )
        return summary

    def generate_forward(self, definition_id: str) -> int:
        """
        Add every missing slot from the boundary to the end of the booking
        window without deleting anything. Used on creation, reactivation and
        by the daily window extension job.
        """
        definition = self._load(definition_id)
        if definition is None or definition.status != "active":
            return 0
        now = self.clock()
        created = self._insert_missing(
            definition, effective_boundary(definition, now), generation_window_end(definition, now)
        )
        self._commit(definition_id)
        if created:
            logger.info(f"📅 Generated {created} slots for definition {definition_id}")
        return created

    def purge_available(self, definition_id: str) -> int:
        """Drop every available slot of a definition; booked slots survive as record"""
        deleted = self.repo.delete_available_slots(self.db, definition_id)
        self.db.commit()
        if deleted:
            logger.info(f"🧹 Purged {deleted} available slots for definition {definition_id}")
        return deleted

    def is_still_offered(self, slot) -> bool:
        """
        Whether the definition as it stands now would generate ``slot``.

        False when the definition is gone or not active, when an exception
        covers the slot, or when the current blocks, timezone or effective
        range no longer produce this start and end.
        """
        definition = self._load(slot.definition_id) if slot.definition_id else None
        if definition is None or definition.status != "active":
            return False
        candidates = generate_slots(
            definition, slot.start_time, slot.start_time, self._exceptions(definition.id)
        )
        return any(c.start_time == slot.start_time and c.end_time == slot.end_time for c in candidates)

    def discard_if_orphaned(self, slot_id: str) -> bool:
        """
        Delete a just-released slot the current rules no longer offer.

        Runs inside the caller's release transaction and does not commit.

        Returns:
            bool: True when the slot was deleted
        """
        slot = self.repo.get_slot(self.db, slot_id)
        if slot is None or self.is_still_offered(slot):
            return False
        deleted = self.repo.delete_available_slot(self.db, slot_id)
        if deleted:
            logger.info(f"🧹 Released slot {slot_id} is no longer offered by its definition; deleted")
        return deleted

    def apply_exception(self, exception: ScheduleException) -> int:
        """
        Remove already generated available slots overlapping a new exception's
        occurrences within the current generation window. Past slots are left alone.
        """
        definition = self._load(exception.definition_id)
        if definition is None:
            return 0
        now = self.clock()
        window_end = generation_window_end(definition, now)
        intervals = exception_intervals([exception], definition.timezone, now, window_end)
        # Recurring series are unbounded; keep only occurrences touching the window
        intervals = [(s, e) for s, e in intervals if e > now and s <= window_end]

        deleted = self.repo.delete_available_overlapping(self.db, definition.id, intervals, now)
        self.db.commit()
        logger.info(f"🚫 Exception {exception.id} removed {deleted} available slots")
        return deleted
