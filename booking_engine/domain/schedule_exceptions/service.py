"""Schedule exception service - blackout management and slot invalidation"""

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from ...errors import Forbidden, NotFound
from ...models import ScheduleException
from ...shared.time_utils import utcnow
from ..availability.service import AvailabilityService
from ..slots.regenerator import ScheduleRegenerator
from .repository import ScheduleExceptionRepository
from .schemas import ExceptionCreate, ExceptionResponse

logger = logging.getLogger(__name__)


def exception_to_response(exception: ScheduleException) -> ExceptionResponse:
    return ExceptionResponse(
        id=exception.id,
        definitionId=exception.definition_id,
        ownerId=exception.owner_id,
        timezone=exception.timezone,
        startDatetime=exception.start_datetime,
        endDatetime=exception.end_datetime,
        reason=exception.reason,
        recurring=exception.recurring,
        recurrencePattern=exception.recurrence_pattern,
    )


class ScheduleExceptionService:
    """Service layer for schedule exceptions"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.repo = ScheduleExceptionRepository()
        self.definitions = AvailabilityService(db, clock=clock)
        self.regenerator = ScheduleRegenerator(db, clock=clock)

    def list_exceptions(self, definition_id: str, owner_id: str) -> list[ScheduleException]:
        self.definitions.get_owned_definition(definition_id, owner_id)
        return self.repo.list_exceptions(self.db, definition_id)

    def get_exception(self, exception_id: str, owner_id: str) -> ScheduleException:
        exception = self.repo.get_exception(self.db, exception_id)
        if not exception:
            raise NotFound("Schedule exception not found", {"exception_id": exception_id})
        if exception.owner_id != owner_id:
            raise Forbidden("You can only manage your own exceptions", {"exception_id": exception_id})
        return exception

    def create_exception(
        self, definition_id: str, owner_id: str, data: ExceptionCreate
    ) -> ScheduleException:
        """
        Store a blackout and drop already generated available slots that
        overlap its occurrences inside the current generation window.
        """
        definition = self.definitions.get_owned_definition(definition_id, owner_id)
        pattern = None
        if data.recurring and data.recurrencePattern is not None:
            pattern = data.recurrencePattern.model_dump(mode="json", exclude_none=True)

        exception = self.repo.create_exception(
            self.db,
            definition_id=definition.id,
            owner_id=owner_id,
            timezone=data.timezone,
            start_datetime=data.startDatetime,
            end_datetime=data.endDatetime,
            reason=data.reason.strip(),
            recurring=data.recurring,
            recurrence_pattern=pattern,
        )
        logger.info(
            f"📥 Exception {exception.id} added to definition {definition_id} "
            f"({'recurring ' + pattern['type'] if pattern else 'one-time'})"
        )
        self.regenerator.apply_exception(exception)
        return exception

    def delete_exception(self, exception_id: str, owner_id: str) -> dict:
        """Remove a blackout and regenerate so the freed time becomes bookable again"""
        exception = self.get_exception(exception_id, owner_id)
        definition_id = exception.definition_id
        self.repo.delete_exception(self.db, exception)
        summary = self.regenerator.regenerate(definition_id)
        logger.info(f"🗑️ Exception {exception_id} deleted; {summary['created']} slots regenerated")
        return {"message": "Schedule exception deleted", "regeneratedSlots": summary["created"]}
