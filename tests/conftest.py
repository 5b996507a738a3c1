"""Shared test fixtures and helpers."""

from datetime import date, datetime, timedelta
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from booking_engine import models  # noqa: F401 - register tables
from booking_engine.database import Base
from booking_engine.domain.availability.schemas import AvailabilityCreate
from booking_engine.domain.availability.service import AvailabilityService
from booking_engine.domain.bookings.service import BookingService
from booking_engine.services.billing_service import BillingClient, BillingError
from booking_engine.services.notification_service import Notifier

# Monday; US DST starts Sunday 2026-03-08
NOW = datetime(2026, 3, 2, 12, 0)

PROVIDER = "provider-1"
CLIENT = "client-1"
OTHER_CLIENT = "client-2"


class FixedClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime):
        self.now = now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeBilling(BillingClient):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.invoices = []
        self.cancellations = []

    def create_invoice(self, customer, merchant, context_key, amount_minor_units, currency):
        if self.fail:
            raise BillingError("billing is down")
        self.invoices.append(
            {
                "customer": customer,
                "merchant": merchant,
                "context": context_key,
                "amount": amount_minor_units,
                "currency": currency,
            }
        )
        return f"inv-{len(self.invoices)}"

    def report_cancellation(self, invoice_id, booking_id, within_threshold):
        self.cancellations.append((invoice_id, booking_id, within_threshold))


class FakeNotifier(Notifier):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events = []

    def notify(self, event, recipients, data):
        if self.fail:
            raise RuntimeError("notification service unreachable")
        self.events.append((event, recipients, data))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def billing():
    return FakeBilling()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def availability_service(db, clock):
    return AvailabilityService(db, clock=clock)


@pytest.fixture
def booking_service(db, clock, billing, notifier):
    return BookingService(db, billing=billing, notifier=notifier, clock=clock)


def monday_morning(
    start: str = "09:00",
    end: str = "10:00",
    slot_duration: int = 30,
    buffer_time: int = 0,
) -> dict:
    """Daily configs with a single Monday block"""
    return {
        "mon": {
            "enabled": True,
            "timeBlocks": [
                {
                    "startTime": start,
                    "endTime": end,
                    "slotDuration": slot_duration,
                    "bufferTime": buffer_time,
                }
            ],
        }
    }


def make_payload(
    daily_configs: Optional[dict] = None,
    billing_config: Optional[dict] = None,
    form_config: Optional[dict] = None,
    **overrides,
) -> AvailabilityCreate:
    """
    Monday 09:00-10:00 America/New_York, bookable from one hour to
    fourteen days ahead. From NOW that materializes four slots:
    2026-03-02 14:00/14:30 UTC (EST) and 2026-03-09 13:00/13:30 UTC (EDT).
    """
    data = {
        "title": "Consultations",
        "timezone": "America/New_York",
        "minAdvanceMinutes": 60,
        "maxAdvanceDays": 14,
        "effectiveFrom": date(2026, 3, 1),
        "dailyConfigs": daily_configs or monday_morning(),
        "billingConfig": billing_config,
        "formConfig": form_config,
    }
    data.update(overrides)
    return AvailabilityCreate(**data)


@pytest.fixture
def definition(availability_service):
    return availability_service.create_definition(PROVIDER, make_payload())


@pytest.fixture
def priced_definition(availability_service):
    return availability_service.create_definition(
        PROVIDER,
        make_payload(
            billing_config={"price": 5000, "currency": "usd", "cancellationThresholdMinutes": 1440}
        ),
    )
