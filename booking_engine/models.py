import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

DAY_KEYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
LOCATION_TYPES = ("video", "phone", "in-person")

DEFINITION_STATUSES = ("draft", "active", "paused", "archived")
SLOT_STATUSES = ("available", "booked", "blocked")
BOOKING_STATUSES = (
    "pending",
    "confirmed",
    "rejected",
    "cancelled",
    "completed",
    "no_show_client",
    "no_show_provider",
)
TERMINAL_BOOKING_STATUSES = (
    "rejected",
    "cancelled",
    "completed",
    "no_show_client",
    "no_show_provider",
)


def generate_id():
    """Generate a unique identifier for engine records"""
    return str(uuid.uuid4())


class AvailabilityDefinition(Base):
    """An owner's recurring weekly schedule template"""

    __tablename__ = "availability_definitions"

    id = Column(String(36), primary_key=True, default=generate_id)
    owner_id = Column(String(36), nullable=False, index=True)
    context = Column(String(255), nullable=True)  # Optional domain association

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    timezone = Column(String(64), nullable=False, default="America/New_York")
    location_types = Column(JSON, nullable=False, default=lambda: list(LOCATION_TYPES))

    # Booking window: earliest = now + min_advance_minutes, latest = now + max_advance_days
    min_advance_minutes = Column(Integer, nullable=False, default=1440)
    max_advance_days = Column(Integer, nullable=False, default=30)

    effective_from = Column(Date, nullable=False)
    effective_to = Column(Date, nullable=True)

    # {"mon": {"enabled": true, "timeBlocks": [{"startTime": "09:00", ...}]}, ...}
    daily_configs = Column(JSON, nullable=False)
    form_config = Column(JSON, nullable=True)
    # {"price": 5000, "currency": "USD", "cancellationThresholdMinutes": 1440}
    billing_config = Column(JSON, nullable=True)

    # draft | active | paused | archived
    status = Column(String(20), nullable=False, default="active", index=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    exceptions = relationship(
        "ScheduleException",
        back_populates="definition",
        cascade="all, delete-orphan",
    )


class ScheduleException(Base):
    """Owner-declared blackout interval, optionally recurring.

    start/end are local wall-clock datetimes in ``timezone`` (or the
    definition's timezone when unset). For recurring exceptions they define
    the first occurrence's time of day and duration.
    """

    __tablename__ = "schedule_exceptions"

    id = Column(String(36), primary_key=True, default=generate_id)
    definition_id = Column(
        String(36),
        ForeignKey("availability_definitions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_id = Column(String(36), nullable=False, index=True)
    timezone = Column(String(64), nullable=True)

    start_datetime = Column(DateTime, nullable=False)
    end_datetime = Column(DateTime, nullable=False)
    reason = Column(String(500), nullable=False)

    recurring = Column(Boolean, nullable=False, default=False)
    recurrence_pattern = Column(JSON, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    definition = relationship("AvailabilityDefinition", back_populates="exceptions")


class TimeSlot(Base):
    """A concrete, UTC-anchored bookable interval.

    ``definition_id`` is a plain reference: booked slots outlive the
    definition that generated them.
    """

    __tablename__ = "time_slots"

    id = Column(String(36), primary_key=True, default=generate_id)
    owner_id = Column(String(36), nullable=False)
    definition_id = Column(String(36), nullable=True, index=True)

    # Provider-local calendar day; start/end are naive UTC instants
    slot_date = Column(Date, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    location_types = Column(JSON, nullable=False)
    # available | booked | blocked
    status = Column(String(20), nullable=False, default="available", index=True)
    price_override = Column(JSON, nullable=True)
    booking_id = Column(String(36), nullable=True, index=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        # Primary double-booking guard at the storage layer
        UniqueConstraint("owner_id", "start_time", name="uq_time_slots_owner_start"),
        Index("ix_time_slots_owner_date", "owner_id", "slot_date"),
    )


class Booking(Base):
    """A reservation of a slot by a client against a provider"""

    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    client_id = Column(String(36), nullable=False, index=True)
    provider_id = Column(String(36), nullable=False, index=True)
    slot_id = Column(
        String(36), ForeignKey("time_slots.id", ondelete="SET NULL"), nullable=True, index=True
    )
    definition_id = Column(String(36), nullable=True)

    location_type = Column(String(20), nullable=False)
    reason = Column(String(500), nullable=True)

    # Status workflow: pending → confirmed → completed / cancelled / no_show_*
    #                  pending → rejected (provider or auto-rejection timer)
    status = Column(String(30), nullable=False, default="pending", index=True)

    booked_at = Column(DateTime, nullable=False)
    confirmed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Snapshot of the slot at booking time
    scheduled_at = Column(DateTime, nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False)
    ends_at = Column(DateTime, nullable=False, index=True)
    price_amount = Column(Integer, nullable=True)  # Minor units
    currency = Column(String(3), nullable=True)

    rejection_reason = Column(String(500), nullable=True)
    rejected_at = Column(DateTime, nullable=True)

    cancellation_reason = Column(String(500), nullable=True)
    cancelled_by = Column(String(20), nullable=True)  # client, provider, system
    cancelled_at = Column(DateTime, nullable=True)
    cancelled_within_threshold = Column(Boolean, nullable=True)

    no_show_marked_by = Column(String(20), nullable=True)  # client or provider
    no_show_marked_at = Column(DateTime, nullable=True)

    form_responses = Column(JSON, nullable=True)
    invoice_id = Column(String(255), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (Index("ix_bookings_provider_scheduled", "provider_id", "scheduled_at"),)


class BookingTimer(Base):
    """Durable delayed action keyed by booking, processed by the worker"""

    __tablename__ = "booking_timers"

    id = Column(String(36), primary_key=True, default=generate_id)
    booking_id = Column(
        String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    action = Column(String(30), nullable=False, default="auto_reject")
    fire_at = Column(DateTime, nullable=False, index=True)
    # pending | cancelled | fired | stale
    status = Column(String(20), nullable=False, default="pending", index=True)
    processed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
