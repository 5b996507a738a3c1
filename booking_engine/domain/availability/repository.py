"""Availability repository - Database operations for availability definitions"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import AvailabilityDefinition


class AvailabilityRepository:
    """Repository for availability definition database operations"""

    @staticmethod
    def get_definition(db: Session, definition_id: str) -> Optional[AvailabilityDefinition]:
        return (
            db.query(AvailabilityDefinition)
            .filter(AvailabilityDefinition.id == definition_id)
            .first()
        )

    @staticmethod
    def list_definitions(
        db: Session, owner_id: str, status: Optional[str] = None
    ) -> list[AvailabilityDefinition]:
        query = db.query(AvailabilityDefinition).filter(AvailabilityDefinition.owner_id == owner_id)
        if status:
            query = query.filter(AvailabilityDefinition.status == status)
        return query.order_by(AvailabilityDefinition.created_at.desc()).all()

    @staticmethod
    def list_active(db: Session) -> list[AvailabilityDefinition]:
        return db.query(AvailabilityDefinition).filter(AvailabilityDefinition.status == "active").all()

    @staticmethod
    def create_definition(db: Session, owner_id: str, **fields) -> AvailabilityDefinition:
        definition = AvailabilityDefinition(owner_id=owner_id, **fields)
        db.add(definition)
        db.commit()
        db.refresh(definition)
        return definition

    @staticmethod
    def update_definition(db: Session, definition: AvailabilityDefinition, **updates) -> AvailabilityDefinition:
        """Apply updates; None is a legitimate value for clearable fields"""
        for key, value in updates.items():
            if hasattr(definition, key):
                setattr(definition, key, value)
        db.commit()
        db.refresh(definition)
        return definition

    @staticmethod
    def delete_definition(db: Session, definition: AvailabilityDefinition) -> None:
        db.delete(definition)
        db.commit()
