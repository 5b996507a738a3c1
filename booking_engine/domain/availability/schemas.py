"""Availability domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ...models import DAY_KEYS
from ...shared.validators import parse_time_of_day, validate_timezone

LocationType = Literal["video", "phone", "in-person"]
DefinitionStatus = Literal["draft", "active", "paused", "archived"]


class TimeBlock(BaseModel):
    """A contiguous local-time work period within one weekday"""

    startTime: str
    endTime: str
    slotDuration: int = Field(default=30, ge=15, le=480)
    bufferTime: int = Field(default=0, ge=0, le=120)

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_time_of_day(cls, v):
        parse_time_of_day(v)
        return v.strip()

    @model_validator(mode="after")
    def validate_order(self):
        if parse_time_of_day(self.endTime) <= parse_time_of_day(self.startTime):
            raise ValueError(f"Time block end {self.endTime} must be after start {self.startTime}")
        return self


class DailyConfig(BaseModel):
    enabled: bool = False
    timeBlocks: list[TimeBlock] = Field(default_factory=list)


class BillingConfig(BaseModel):
    price: int = Field(ge=0)  # Minor units (cents)
    currency: str = Field(min_length=3, max_length=3)
    cancellationThresholdMinutes: int = Field(default=1440, ge=0)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v):
        return v.upper()


# ============================================================================
# FORM CONFIG - tagged variants discriminated by field type
# ============================================================================


class FormFieldOption(BaseModel):
    label: str
    value: str


class _FormFieldBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    label: str
    required: bool = False
    placeholder: Optional[str] = None
    helpText: Optional[str] = None


class TextFormField(_FormFieldBase):
    type: Literal["text", "textarea", "email", "phone", "url"]
    minLength: Optional[int] = Field(default=None, ge=0)
    maxLength: Optional[int] = Field(default=None, ge=1)
    pattern: Optional[str] = None


class NumberFormField(_FormFieldBase):
    type: Literal["number"]
    min: Optional[float] = None
    max: Optional[float] = None


class DateFormField(_FormFieldBase):
    type: Literal["date", "datetime"]
    min: Optional[str] = None
    max: Optional[str] = None


class ChoiceFormField(_FormFieldBase):
    type: Literal["select", "multiselect"]
    options: list[FormFieldOption] = Field(min_length=1)


class CheckboxFormField(_FormFieldBase):
    type: Literal["checkbox"]


class DisplayFormField(_FormFieldBase):
    """Static content shown to the client; never carries a response"""

    type: Literal["display"]


FormField = Annotated[
    Union[
        TextFormField,
        NumberFormField,
        DateFormField,
        ChoiceFormField,
        CheckboxFormField,
        DisplayFormField,
    ],
    Field(discriminator="type"),
]


class FormConfig(BaseModel):
    fields: list[FormField] = Field(default_factory=list)

    @model_validator(mode="after")
    def unique_names(self):
        names = [f.name for f in self.fields]
        if len(names) != len(set(names)):
            raise ValueError("Form field names must be unique")
        return self


# ============================================================================
# DEFINITION REQUESTS
# ============================================================================


def _check_daily_configs(configs: dict[str, DailyConfig]) -> dict[str, DailyConfig]:
    unknown = set(configs) - set(DAY_KEYS)
    if unknown:
        raise ValueError(f"Unknown weekday keys: {sorted(unknown)}")
    for day, config in configs.items():
        blocks = sorted(config.timeBlocks, key=lambda b: parse_time_of_day(b.startTime))
        for previous, current in zip(blocks, blocks[1:]):
            if parse_time_of_day(current.startTime) < parse_time_of_day(previous.endTime):
                raise ValueError(
                    f"Overlapping time blocks on {day}: "
                    f"{previous.startTime}-{previous.endTime} and "
                    f"{current.startTime}-{current.endTime}"
                )
    return configs


class AvailabilityCreate(BaseModel):
    """Schema for creating an availability definition"""

    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    context: Optional[str] = None
    timezone: str = "America/New_York"
    locationTypes: list[LocationType] = Field(
        default_factory=lambda: ["video", "phone", "in-person"], min_length=1
    )
    minAdvanceMinutes: int = Field(default=1440, ge=0, le=4320)
    maxAdvanceDays: int = Field(default=30, ge=0, le=365)
    effectiveFrom: Optional[date] = None
    effectiveTo: Optional[date] = None
    dailyConfigs: dict[str, DailyConfig]
    formConfig: Optional[FormConfig] = None
    billingConfig: Optional[BillingConfig] = None
    status: DefinitionStatus = "active"

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v):
        return validate_timezone(v)

    @field_validator("dailyConfigs")
    @classmethod
    def check_daily_configs(cls, v):
        return _check_daily_configs(v)

    @model_validator(mode="after")
    def check_effective_range(self):
        if self.effectiveFrom and self.effectiveTo and self.effectiveTo <= self.effectiveFrom:
            raise ValueError("effectiveTo must be after effectiveFrom")
        return self


class AvailabilityUpdate(BaseModel):
    """Schema for updating a definition; omitted fields are left unchanged"""

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    timezone: Optional[str] = None
    locationTypes: Optional[list[LocationType]] = Field(default=None, min_length=1)
    minAdvanceMinutes: Optional[int] = Field(default=None, ge=0, le=4320)
    maxAdvanceDays: Optional[int] = Field(default=None, ge=0, le=365)
    effectiveTo: Optional[date] = None
    dailyConfigs: Optional[dict[str, DailyConfig]] = None
    formConfig: Optional[FormConfig] = None
    billingConfig: Optional[BillingConfig] = None
    status: Optional[DefinitionStatus] = None

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v):
        if v is None:
            return v
        return validate_timezone(v)

    @field_validator("dailyConfigs")
    @classmethod
    def check_daily_configs(cls, v):
        if v is None:
            return v
        return _check_daily_configs(v)


class AvailabilityResponse(BaseModel):
    """Schema for availability definition response"""

    id: str
    ownerId: str
    context: Optional[str]
    title: str
    description: Optional[str]
    timezone: str
    locationTypes: list[str]
    minAdvanceMinutes: int
    maxAdvanceDays: int
    effectiveFrom: date
    effectiveTo: Optional[date]
    dailyConfigs: dict
    formConfig: Optional[dict]
    billingConfig: Optional[dict]
    status: str
    createdAt: Optional[datetime] = None
