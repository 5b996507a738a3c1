"""Schedule exception schemas - blackout intervals and recurrence patterns"""

from datetime import date, datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from ...errors import ValidationError
from ...shared.validators import validate_timezone

# Days in each month of a leap year, used to reject impossible yearly dates
_MAX_MONTH_DAYS = (31, 29, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


class _PatternBase(BaseModel):
    interval: int = Field(default=1, ge=1)
    maxOccurrences: Optional[int] = Field(default=None, ge=1)
    endDate: Optional[date] = None

    @model_validator(mode="after")
    def single_termination_rule(self):
        if self.maxOccurrences is not None and self.endDate is not None:
            raise ValueError("maxOccurrences and endDate are mutually exclusive")
        return self


class DailyPattern(_PatternBase):
    type: Literal["daily"]


class WeeklyPattern(_PatternBase):
    type: Literal["weekly"]
    # 0 = Sunday ... 6 = Saturday; an empty list matches no dates
    daysOfWeek: list[int] = Field(default_factory=list)

    @field_validator("daysOfWeek")
    @classmethod
    def check_days(cls, v):
        for day in v:
            if day < 0 or day > 6:
                raise ValueError(f"Weekday index {day} out of range 0-6")
        return sorted(set(v))


class MonthlyPattern(_PatternBase):
    type: Literal["monthly"]
    # Defaults to the anchor's day of month
    dayOfMonth: Optional[int] = Field(default=None, ge=1, le=31)


class YearlyPattern(_PatternBase):
    type: Literal["yearly"]
    dayOfMonth: Optional[int] = Field(default=None, ge=1, le=31)
    monthOfYear: Optional[int] = Field(default=None, ge=1, le=12)

    @model_validator(mode="after")
    def check_calendar_date(self):
        if self.dayOfMonth and self.monthOfYear:
            if self.dayOfMonth > _MAX_MONTH_DAYS[self.monthOfYear - 1]:
                raise ValueError(
                    f"Month {self.monthOfYear} never has a day {self.dayOfMonth}"
                )
        return self


RecurrencePattern = Annotated[
    Union[DailyPattern, WeeklyPattern, MonthlyPattern, YearlyPattern],
    Field(discriminator="type"),
]

_pattern_adapter = TypeAdapter(RecurrencePattern)


def parse_recurrence_pattern(raw) -> Union[DailyPattern, WeeklyPattern, MonthlyPattern, YearlyPattern]:
    """Validate a stored or submitted pattern payload, raising the engine's ValidationError"""
    if isinstance(raw, _PatternBase):
        return raw
    try:
        return _pattern_adapter.validate_python(raw)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid recurrence pattern",
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e


class ExceptionCreate(BaseModel):
    """Schema for creating a schedule exception (local wall-clock times)"""

    timezone: Optional[str] = None
    startDatetime: datetime
    endDatetime: datetime
    reason: str = Field(min_length=1, max_length=500)
    recurring: bool = False
    recurrencePattern: Optional[RecurrencePattern] = None

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v):
        if v is None:
            return v
        return validate_timezone(v)

    @field_validator("startDatetime", "endDatetime")
    @classmethod
    def strip_tz(cls, v):
        # Exceptions are expressed in local wall-clock time
        return v.replace(tzinfo=None)

    @model_validator(mode="after")
    def check_interval(self):
        if self.endDatetime <= self.startDatetime:
            raise ValueError("endDatetime must be after startDatetime")
        if self.recurring and self.recurrencePattern is None:
            raise ValueError("Recurring exceptions require a recurrencePattern")
        if not self.recurring and self.recurrencePattern is not None:
            raise ValueError("recurrencePattern is only allowed on recurring exceptions")
        return self


class ExceptionResponse(BaseModel):
    id: str
    definitionId: str
    ownerId: str
    timezone: Optional[str]
    startDatetime: datetime
    endDatetime: datetime
    reason: str
    recurring: bool
    recurrencePattern: Optional[dict]
