"""
Slot generation from availability definitions.

Pure functions: nothing here reads or writes storage. Candidates are returned
as transient ``TimeSlot`` instances the caller may add to a session.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from pydantic import ValidationError as PydanticValidationError

from ...errors import ValidationError
from ...models import DAY_KEYS, TimeSlot
from ...shared.time_utils import local_date, local_to_utc, resolve_local
from ...shared.validators import parse_time_of_day
from ..availability.schemas import DailyConfig
from .recurrence import expand

logger = logging.getLogger(__name__)

Interval = tuple[datetime, datetime]


def day_key(day: date) -> str:
    """'sun' ... 'sat' for a calendar date"""
    return DAY_KEYS[(day.weekday() + 1) % 7]


def parse_daily_configs(raw: Optional[dict]) -> dict[str, DailyConfig]:
    """
    Validate stored daily configs. Overlapping blocks are accepted here; they
    are rejected when a definition is written.
    """
    configs = {}
    for key, value in (raw or {}).items():
        if key not in DAY_KEYS:
            raise ValidationError(f"Unknown weekday key '{key}'", {"day": key})
        try:
            configs[key] = DailyConfig.model_validate(value)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid daily config for {key}",
                details={"day": key, "errors": e.errors(include_url=False, include_context=False)},
            ) from e
    return configs


def exception_intervals(
    exceptions: Iterable,
    default_timezone: str,
    window_start: datetime,
    window_end: datetime,
) -> list[Interval]:
    """
    Blocked UTC intervals contributed by ``exceptions`` that may touch
    ``[window_start, window_end]``.

    A recurring exception replays its first occurrence's local time of day
    and duration on every expanded date.
    """
    intervals = []
    for exc in exceptions:
        zone = ZoneInfo(exc.timezone or default_timezone)
        duration = exc.end_datetime - exc.start_datetime

        if not exc.recurring or not exc.recurrence_pattern:
            intervals.append(
                (local_to_utc(exc.start_datetime, zone), local_to_utc(exc.end_datetime, zone))
            )
            continue

        # A day of margin on each side covers any UTC offset
        first_day = (window_start - duration - timedelta(days=1)).date()
        last_day = (window_end + timedelta(days=1)).date()
        start_of_day = exc.start_datetime.time()
        for occurrence in expand(exc.recurrence_pattern, exc.start_datetime.date(), first_day, last_day):
            local_start = datetime.combine(occurrence, start_of_day)
            intervals.append(
                (local_to_utc(local_start, zone), local_to_utc(local_start + duration, zone))
            )
    return intervals


def overlaps(start: datetime, end: datetime, intervals: list[Interval]) -> bool:
    return any(start < block_end and block_start < end for block_start, block_end in intervals)


def _candidate_days(definition, zone: ZoneInfo, window_start: datetime, window_end: datetime):
    first_day = local_date(window_start, zone)
    last_day = local_date(window_end, zone)

    if definition.effective_from and first_day < definition.effective_from:
        first_day = definition.effective_from
    if definition.effective_to:
        # effective_to is exclusive
        last_day = min(last_day, definition.effective_to - timedelta(days=1))

    day = first_day
    while day <= last_day:
        yield day
        day += timedelta(days=1)


def generate_slots(
    definition,
    window_start: datetime,
    window_end: datetime,
    exceptions: Iterable = (),
) -> list[TimeSlot]:
    """
    Candidate slots for ``definition`` starting within ``[window_start, window_end]``.

    Slots are laid out at ``slotDuration + bufferTime`` stride from each block's
    start and stop once a full ``slotDuration`` no longer fits before the
    block's end. Local times removed by a DST gap produce no slot; local
    times repeated by a DST fold produce one slot per UTC instant. Any
    candidate overlapping an exception occurrence is dropped.
    """
    zone = ZoneInfo(definition.timezone)
    configs = parse_daily_configs(definition.daily_configs)
    blocked = exception_intervals(exceptions, definition.timezone, window_start, window_end)

    slots = []
    seen_starts = set()
    skipped = 0

    for day in _candidate_days(definition, zone, window_start, window_end):
        config = configs.get(day_key(day))
        if not config or not config.enabled:
            continue

        for block in config.timeBlocks:
            block_end = datetime.combine(day, parse_time_of_day(block.endTime))
            cursor = datetime.combine(day, parse_time_of_day(block.startTime))
            duration = timedelta(minutes=block.slotDuration)
            stride = timedelta(minutes=block.slotDuration + block.bufferTime)

            while cursor + duration <= block_end:
                for start in resolve_local(cursor, zone):
                    if start < window_start or start > window_end or start in seen_starts:
                        continue
                    end = start + duration
                    if overlaps(start, end, blocked):
                        skipped += 1
                        continue
                    seen_starts.add(start)
                    slots.append(
                        TimeSlot(
                            owner_id=definition.owner_id,
                            definition_id=definition.id,
                            slot_date=day,
                            start_time=start,
                            end_time=end,
                            location_types=list(definition.location_types or []),
                            status="available",
                            booking_id=None,
                        )
                    )
                cursor += stride

    slots.sort(key=lambda s: s.start_time)
    logger.debug(
        f"Generated {len(slots)} candidate slots for definition {definition.id} "
        f"({skipped} dropped by exceptions)"
    )
    return slots
