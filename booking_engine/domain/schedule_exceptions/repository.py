"""Schedule exception repository - Database operations for blackout intervals"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import ScheduleException


class ScheduleExceptionRepository:
    """Repository for schedule exception database operations"""

    @staticmethod
    def get_exception(db: Session, exception_id: str) -> Optional[ScheduleException]:
        return db.query(ScheduleException).filter(ScheduleException.id == exception_id).first()

    @staticmethod
    def list_exceptions(db: Session, definition_id: str) -> list[ScheduleException]:
        return (
            db.query(ScheduleException)
            .filter(ScheduleException.definition_id == definition_id)
            .order_by(ScheduleException.start_datetime.asc())
            .all()
        )

    @staticmethod
    def create_exception(db: Session, **fields) -> ScheduleException:
        exception = ScheduleException(**fields)
        db.add(exception)
        db.commit()
        db.refresh(exception)
        return exception

    @staticmethod
    def delete_exception(db: Session, exception: ScheduleException) -> None:
        db.delete(exception)
        db.commit()
