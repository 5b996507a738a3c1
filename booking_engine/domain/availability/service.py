"""Availability service - definition lifecycle and regeneration triggers"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...errors import Forbidden, NotFound, ValidationError
from ...models import AvailabilityDefinition
from ...shared.time_utils import utcnow
from ..slots.regenerator import ScheduleRegenerator
from .repository import AvailabilityRepository
from .schemas import AvailabilityCreate, AvailabilityUpdate

logger = logging.getLogger(__name__)

# Request field → column
_FIELD_MAP = {
    "title": "title",
    "description": "description",
    "timezone": "timezone",
    "locationTypes": "location_types",
    "minAdvanceMinutes": "min_advance_minutes",
    "maxAdvanceDays": "max_advance_days",
    "effectiveTo": "effective_to",
    "dailyConfigs": "daily_configs",
    "formConfig": "form_config",
    "billingConfig": "billing_config",
    "status": "status",
}

_JSON_FIELDS = {"dailyConfigs", "formConfig", "billingConfig"}


def _dump(field: str, value):
    if value is None:
        return None
    if field == "dailyConfigs":
        return {day: config.model_dump() for day, config in value.items()}
    if field in _JSON_FIELDS:
        return value.model_dump(exclude_none=True)
    return value


def definition_to_response(definition: AvailabilityDefinition) -> dict:
    return {
        "id": definition.id,
        "ownerId": definition.owner_id,
        "context": definition.context,
        "title": definition.title,
        "description": definition.description,
        "timezone": definition.timezone,
        "locationTypes": definition.location_types,
        "minAdvanceMinutes": definition.min_advance_minutes,
        "maxAdvanceDays": definition.max_advance_days,
        "effectiveFrom": definition.effective_from,
        "effectiveTo": definition.effective_to,
        "dailyConfigs": definition.daily_configs,
        "formConfig": definition.form_config,
        "billingConfig": definition.billing_config,
        "status": definition.status,
        "createdAt": definition.created_at,
    }


class AvailabilityService:
    """Service layer for availability definitions"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.repo = AvailabilityRepository()
        self.regenerator = ScheduleRegenerator(db, clock=clock)
        self.clock = clock

    def get_definition(self, definition_id: str) -> AvailabilityDefinition:
        definition = self.repo.get_definition(self.db, definition_id)
        if not definition:
            raise NotFound("Availability definition not found", {"definition_id": definition_id})
        return definition

    def get_owned_definition(self, definition_id: str, owner_id: str) -> AvailabilityDefinition:
        definition = self.get_definition(definition_id)
        if definition.owner_id != owner_id:
            raise Forbidden(
                "You can only manage your own availability", {"definition_id": definition_id}
            )
        return definition

    def list_definitions(self, owner_id: str, status: Optional[str] = None) -> list[AvailabilityDefinition]:
        return self.repo.list_definitions(self.db, owner_id, status)

    def create_definition(self, owner_id: str, data: AvailabilityCreate) -> AvailabilityDefinition:
        """Create a definition and materialize its slots when active"""
        logger.info(f"📥 Creating availability definition for owner {owner_id}")
        definition = self.repo.create_definition(
            self.db,
            owner_id,
            title=data.title,
            description=data.description,
            context=data.context,
            timezone=data.timezone,
            location_types=list(data.locationTypes),
            min_advance_minutes=data.minAdvanceMinutes,
            max_advance_days=data.maxAdvanceDays,
            effective_from=data.effectiveFrom or self.clock().date(),
            effective_to=data.effectiveTo,
            daily_configs=_dump("dailyConfigs", data.dailyConfigs),
            form_config=_dump("formConfig", data.formConfig),
            billing_config=_dump("billingConfig", data.billingConfig),
            status=data.status,
        )
        if definition.status == "active":
            self.regenerator.generate_forward(definition.id)
        return definition

    def update_definition(
        self, definition_id: str, owner_id: str, data: AvailabilityUpdate
    ) -> AvailabilityDefinition:
        """
        Apply a partial update, then regenerate, purge or re-activate slots
        depending on which fields changed.
        """
        definition = self.get_owned_definition(definition_id, owner_id)
        previous_status = definition.status

        updates = {}
        for field in data.model_fields_set:
            column = _FIELD_MAP.get(field)
            if column is None:
                continue
            value = _dump(field, getattr(data, field))
            if value is None and field in ("title", "timezone", "locationTypes", "dailyConfigs",
                                           "minAdvanceMinutes", "maxAdvanceDays", "status"):
                raise ValidationError(f"{field} cannot be cleared", {"field": field})
            if getattr(definition, column) != value:
                updates[column] = value

        effective_to = updates.get("effective_to", definition.effective_to)
        if effective_to is not None and effective_to <= definition.effective_from:
            raise ValidationError(
                "effectiveTo must be after effectiveFrom",
                {"effective_from": definition.effective_from.isoformat()},
            )

        if not updates:
            return definition

        definition = self.repo.update_definition(self.db, definition, **updates)
        logger.info(f"✏️ Definition {definition_id} updated: {sorted(updates)}")

        new_status = definition.status
        if new_status != "active":
            if previous_status == "active":
                self.regenerator.purge_available(definition_id)
        elif previous_status != "active":
            # Reactivation: full generation from the boundary forward
            self.regenerator.regenerate(definition_id)
        else:
            self.regenerator.regenerate(definition_id, change_set=updates.keys())
        return definition

    def delete_definition(self, definition_id: str, owner_id: str) -> dict:
        """
        Delete a definition. Available slots go with it; booked slots and their
        bookings stay as historical record.
        """
        definition = self.get_owned_definition(definition_id, owner_id)
        purged = self.regenerator.purge_available(definition_id)
        self.repo.delete_definition(self.db, definition)
        logger.info(f"🗑️ Definition {definition_id} deleted ({purged} available slots purged)")
        return {"message": "Availability definition deleted", "purgedSlots": purged}

    def extend_all_windows(self) -> dict:
        """Top up every active definition's slots to the end of its booking window"""
        summary = {"definitions": 0, "created": 0, "failed": 0}
        for definition in self.repo.list_active(self.db):
            summary["definitions"] += 1
            try:
                summary["created"] += self.regenerator.generate_forward(definition.id)
            except Exception as e:
                self.db.rollback()
                summary["failed"] += 1
                logger.error(f"❌ Failed to extend slots for definition {definition.id}: {e}")
        logger.info(f"📊 Slot window extension summary: {summary}")
        return summary
