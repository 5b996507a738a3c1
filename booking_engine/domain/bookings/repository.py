"""Booking repository - Database operations for bookings and their timers"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from ...models import TERMINAL_BOOKING_STATUSES, Booking, BookingTimer


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_booking(db: Session, booking_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def list_bookings(
        db: Session,
        client_id: Optional[str] = None,
        provider_id: Optional[str] = None,
        party_id: Optional[str] = None,
        status: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        upcoming_after: Optional[datetime] = None,
        past_before: Optional[datetime] = None,
    ) -> list[Booking]:
        """Search bookings; ``party_id`` matches either side"""
        query = db.query(Booking)

        if client_id:
            query = query.filter(Booking.client_id == client_id)
        if provider_id:
            query = query.filter(Booking.provider_id == provider_id)
        if party_id:
            query = query.filter(or_(Booking.client_id == party_id, Booking.provider_id == party_id))
        if status:
            query = query.filter(Booking.status == status)
        if start:
            query = query.filter(Booking.scheduled_at >= start)
        if end:
            query = query.filter(Booking.scheduled_at <= end)
        if upcoming_after:
            query = query.filter(
                Booking.scheduled_at >= upcoming_after,
                Booking.status.in_(["pending", "confirmed"]),
            )
        if past_before:
            query = query.filter(
                or_(
                    Booking.scheduled_at < past_before,
                    Booking.status.in_(TERMINAL_BOOKING_STATUSES),
                )
            )

        return query.order_by(Booking.scheduled_at.asc()).all()

    @staticmethod
    def add_booking(db: Session, booking: Booking) -> Booking:
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def transition(
        db: Session, booking_id: str, from_statuses: Iterable[str], **values
    ) -> bool:
        """
        Conditionally move a booking out of one of ``from_statuses``.

        Returns False when another writer changed the status first.
        """
        result = db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status.in_(list(from_statuses)))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def detach_slot(db: Session, booking_id: str):
        db.execute(
            update(Booking)
            .where(Booking.id == booking_id)
            .values(slot_id=None)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def elapsed_confirmed(db: Session, ended_by: datetime, limit: int) -> list[Booking]:
        """Confirmed bookings that ended at or before ``ended_by``, earliest end first"""
        return (
            db.query(Booking)
            .filter(Booking.status == "confirmed", Booking.ends_at <= ended_by)
            .order_by(Booking.ends_at.asc())
            .limit(limit)
            .all()
        )

    # Timer Methods
    @staticmethod
    def add_timer(db: Session, booking_id: str, fire_at: datetime, action: str = "auto_reject") -> BookingTimer:
        timer = BookingTimer(booking_id=booking_id, fire_at=fire_at, action=action, status="pending")
        db.add(timer)
        db.flush()
        return timer

    @staticmethod
    def get_timer(db: Session, booking_id: str) -> Optional[BookingTimer]:
        return db.query(BookingTimer).filter(BookingTimer.booking_id == booking_id).first()

    @staticmethod
    def cancel_timer(db: Session, booking_id: str, now: datetime) -> bool:
        result = db.execute(
            update(BookingTimer)
            .where(BookingTimer.booking_id == booking_id, BookingTimer.status == "pending")
            .values(status="cancelled", processed_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def due_timers(db: Session, now: datetime, limit: int) -> list[BookingTimer]:
        return (
            db.query(BookingTimer)
            .filter(BookingTimer.status == "pending", BookingTimer.fire_at <= now)
            .order_by(BookingTimer.fire_at.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def finish_timer(db: Session, timer_id: str, status: str, now: datetime) -> bool:
        result = db.execute(
            update(BookingTimer)
            .where(BookingTimer.id == timer_id, BookingTimer.status == "pending")
            .values(status=status, processed_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
