"""Timezone helpers. Stored instants are naive UTC datetimes."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Current instant as a naive UTC datetime"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values are assumed UTC"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def resolve_local(local: datetime, zone: ZoneInfo) -> list[datetime]:
    """
    Resolve a naive local wall-clock time to the naive UTC instants it denotes.

    A wall time skipped by a DST gap resolves to nothing, a wall time
    repeated by a DST fold resolves to both instants.
    """
    instants = []
    for fold in (0, 1):
        aware = local.replace(tzinfo=zone, fold=fold)
        utc = aware.astimezone(timezone.utc)
        # Round-trip check drops wall times that do not exist in this zone
        if utc.astimezone(zone).replace(tzinfo=None) != local:
            continue
        naive = utc.replace(tzinfo=None)
        if naive not in instants:
            instants.append(naive)
    return instants


def local_to_utc(local: datetime, zone: ZoneInfo) -> datetime:
    """Convert a naive local time to naive UTC using zoneinfo's fold=0 rule"""
    return local.replace(tzinfo=zone).astimezone(timezone.utc).replace(tzinfo=None)


def utc_to_local(instant: datetime, zone: ZoneInfo) -> datetime:
    """Convert a naive UTC instant to a naive local wall-clock time"""
    return instant.replace(tzinfo=timezone.utc).astimezone(zone).replace(tzinfo=None)


def local_date(instant: datetime, zone: ZoneInfo) -> date:
    return utc_to_local(instant, zone).date()


def ceil_to_grid(instant: datetime, grid_minutes: int) -> datetime:
    """Round up to the next multiple of ``grid_minutes`` past the hour"""
    floored = instant.replace(second=0, microsecond=0)
    minute_offset = floored.minute % grid_minutes
    if minute_offset == 0 and floored == instant:
        return floored
    return floored + timedelta(minutes=grid_minutes - minute_offset)
