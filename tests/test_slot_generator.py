"""Tests for slot generation from availability definitions."""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from booking_engine.domain.slots.generator import day_key, generate_slots
from booking_engine.errors import ValidationError
from booking_engine.models import AvailabilityDefinition, ScheduleException
from booking_engine.shared.time_utils import utc_to_local
from conftest import monday_morning

NEW_YORK = "America/New_York"


def _definition(daily_configs, timezone=NEW_YORK, effective_from=date(2026, 1, 1), effective_to=None):
    return AvailabilityDefinition(
        id="def-1",
        owner_id="owner-1",
        title="Test",
        timezone=timezone,
        location_types=["video", "phone"],
        min_advance_minutes=0,
        max_advance_days=60,
        effective_from=effective_from,
        effective_to=effective_to,
        daily_configs=daily_configs,
        status="active",
    )


def _sunday(start, end, slot_duration=30):
    return {
        "sun": {
            "enabled": True,
            "timeBlocks": [{"startTime": start, "endTime": end, "slotDuration": slot_duration}],
        }
    }


def _starts(slots):
    return [s.start_time for s in slots]


class TestBasicLayout:
    def test_monday_morning_two_slots(self):
        slots = generate_slots(
            _definition(monday_morning()), datetime(2026, 3, 16), datetime(2026, 3, 17)
        )
        # 09:00 EDT = 13:00 UTC
        assert _starts(slots) == [datetime(2026, 3, 16, 13, 0), datetime(2026, 3, 16, 13, 30)]
        assert [s.end_time for s in slots] == [
            datetime(2026, 3, 16, 13, 30),
            datetime(2026, 3, 16, 14, 0),
        ]
        assert all(s.status == "available" and s.booking_id is None for s in slots)
        assert all(s.slot_date == date(2026, 3, 16) for s in slots)
        assert slots[0].location_types == ["video", "phone"]

    def test_buffer_time_widens_stride(self):
        definition = _definition(monday_morning("09:00", "11:00", slot_duration=30, buffer_time=15))
        slots = generate_slots(definition, datetime(2026, 3, 16), datetime(2026, 3, 17))
        local = [utc_to_local(s, ZoneInfo(NEW_YORK)).strftime("%H:%M") for s in _starts(slots)]
        assert local == ["09:00", "09:45", "10:30"]

    def test_partial_slot_at_block_end_is_not_created(self):
        definition = _definition(monday_morning("09:00", "10:20", slot_duration=30))
        slots = generate_slots(definition, datetime(2026, 3, 16), datetime(2026, 3, 17))
        assert len(slots) == 2

    def test_disabled_day_produces_nothing(self):
        configs = monday_morning()
        configs["mon"]["enabled"] = False
        assert generate_slots(_definition(configs), datetime(2026, 3, 16), datetime(2026, 3, 17)) == []

    def test_local_start_falls_inside_a_block(self):
        configs = {
            key: {
                "enabled": True,
                "timeBlocks": [
                    {"startTime": "08:00", "endTime": "12:00", "slotDuration": 45},
                    {"startTime": "13:00", "endTime": "17:30", "slotDuration": 60, "bufferTime": 10},
                ],
            }
            for key in ("mon", "wed", "fri")
        }
        zone = ZoneInfo("Europe/Berlin")
        slots = generate_slots(
            _definition(configs, timezone="Europe/Berlin"), datetime(2026, 3, 20), datetime(2026, 4, 10)
        )
        assert slots
        for slot in slots:
            local = utc_to_local(slot.start_time, zone)
            assert day_key(local.date()) in ("mon", "wed", "fri")
            assert "08:00" <= local.strftime("%H:%M") < "12:00" or "13:00" <= local.strftime("%H:%M") < "17:30"
        assert len(set(_starts(slots))) == len(slots)

    def test_window_bounds_are_respected(self):
        slots = generate_slots(
            _definition(monday_morning()), datetime(2026, 3, 16, 13, 15), datetime(2026, 3, 16, 13, 30)
        )
        assert _starts(slots) == [datetime(2026, 3, 16, 13, 30)]


class TestEffectiveRange:
    def test_nothing_before_effective_from(self):
        definition = _definition(monday_morning(), effective_from=date(2026, 3, 20))
        slots = generate_slots(definition, datetime(2026, 3, 1), datetime(2026, 3, 31))
        assert {s.slot_date for s in slots} == {date(2026, 3, 23), date(2026, 3, 30)}

    def test_effective_to_is_exclusive(self):
        definition = _definition(monday_morning(), effective_to=date(2026, 3, 23))
        slots = generate_slots(definition, datetime(2026, 3, 1), datetime(2026, 3, 31))
        assert {s.slot_date for s in slots} == {date(2026, 3, 2), date(2026, 3, 9), date(2026, 3, 16)}


class TestDaylightSaving:
    def test_spring_forward_gap_produces_no_slot(self):
        # 2026-03-08 02:00-02:59 does not exist in New York
        definition = _definition(_sunday("01:30", "03:30"))
        slots = generate_slots(definition, datetime(2026, 3, 8), datetime(2026, 3, 9))
        assert _starts(slots) == [datetime(2026, 3, 8, 6, 30), datetime(2026, 3, 8, 7, 0)]

    def test_fall_back_fold_produces_two_instants(self):
        # 2026-11-01 01:00-01:59 happens twice in New York
        definition = _definition(_sunday("01:00", "02:00"))
        slots = generate_slots(definition, datetime(2026, 11, 1), datetime(2026, 11, 2))
        assert _starts(slots) == [
            datetime(2026, 11, 1, 5, 0),
            datetime(2026, 11, 1, 5, 30),
            datetime(2026, 11, 1, 6, 0),
            datetime(2026, 11, 1, 6, 30),
        ]

    def test_slot_end_is_absolute_duration(self):
        definition = _definition(_sunday("01:30", "03:30"))
        for slot in generate_slots(definition, datetime(2026, 3, 8), datetime(2026, 3, 9)):
            assert slot.end_time - slot.start_time == timedelta(minutes=30)


class TestOverlapTolerance:
    def test_overlapping_blocks_are_deduplicated_not_fatal(self):
        configs = {
            "mon": {
                "enabled": True,
                "timeBlocks": [
                    {"startTime": "09:00", "endTime": "10:00"},
                    {"startTime": "09:30", "endTime": "10:30"},
                ],
            }
        }
        slots = generate_slots(_definition(configs), datetime(2026, 3, 16), datetime(2026, 3, 17))
        local = [utc_to_local(s, ZoneInfo(NEW_YORK)).strftime("%H:%M") for s in _starts(slots)]
        assert local == ["09:00", "09:30", "10:00"]

    def test_malformed_stored_config_raises_validation_error(self):
        configs = {"mon": {"enabled": True, "timeBlocks": [{"startTime": "9am", "endTime": "10:00"}]}}
        with pytest.raises(ValidationError):
            generate_slots(_definition(configs), datetime(2026, 3, 16), datetime(2026, 3, 17))


class TestExceptions:
    def _exception(self, start, end, recurring=False, pattern=None, timezone=None):
        return ScheduleException(
            definition_id="def-1",
            owner_id="owner-1",
            timezone=timezone,
            start_datetime=start,
            end_datetime=end,
            reason="Blocked",
            recurring=recurring,
            recurrence_pattern=pattern,
        )

    def test_weekly_exception_removes_first_monday_slot(self):
        exception = self._exception(
            datetime(2026, 3, 16, 9, 0),
            datetime(2026, 3, 16, 9, 30),
            recurring=True,
            pattern={"type": "weekly", "daysOfWeek": [1]},
        )
        slots = generate_slots(
            _definition(monday_morning()), datetime(2026, 3, 16), datetime(2026, 3, 31), [exception]
        )
        assert _starts(slots) == [
            datetime(2026, 3, 16, 13, 30),
            datetime(2026, 3, 23, 13, 30),
            datetime(2026, 3, 30, 13, 30),
        ]

    def test_one_time_exception_only_blocks_its_interval(self):
        exception = self._exception(datetime(2026, 3, 16, 9, 15), datetime(2026, 3, 16, 9, 45))
        slots = generate_slots(
            _definition(monday_morning()), datetime(2026, 3, 16), datetime(2026, 3, 24), [exception]
        )
        assert _starts(slots) == [datetime(2026, 3, 23, 13, 0), datetime(2026, 3, 23, 13, 30)]

    def test_exception_in_its_own_timezone(self):
        # 15:00-15:30 in London is 10:00-10:30 in New York on this date
        exception = self._exception(
            datetime(2026, 3, 30, 15, 0), datetime(2026, 3, 30, 15, 30), timezone="Europe/London"
        )
        definition = _definition(monday_morning("09:00", "11:00"))
        slots = generate_slots(definition, datetime(2026, 3, 30), datetime(2026, 3, 31), [exception])
        local = [utc_to_local(s, ZoneInfo(NEW_YORK)).strftime("%H:%M") for s in _starts(slots)]
        assert local == ["09:00", "09:30", "10:30"]
