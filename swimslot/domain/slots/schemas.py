"""Slot domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ...shared.validators import validate_date_range, validate_time


class SlotCreate(BaseModel):
    """Schema for creating a slot"""

    start_date: date
    end_date: Optional[date] = None
    start_time: str
    end_time: str
    is_holiday: bool = False
    slot_duration: int = Field(60, ge=1, le=24 * 60)

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, v):
        return validate_time(v)

    @model_validator(mode="after")
    def check_ranges(self):
        validate_date_range(self.start_date, self.end_date)
        if self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class SlotUpdate(BaseModel):
    """Schema for updating a slot; only fields that are sent change"""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_holiday: Optional[bool] = None
    slot_duration: Optional[int] = Field(None, ge=1, le=24 * 60)

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, v):
        return validate_time(v)

    @model_validator(mode="after")
    def check_required_not_null(self):
        # end_date is the only field that may be cleared
        for name in ("start_date", "start_time", "end_time", "is_holiday", "slot_duration"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class SlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    start_date: date
    end_date: Optional[date] = None
    start_time: str
    end_time: str
    is_holiday: bool
    slot_duration: int
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class SlotExceptionCreate(BaseModel):
    date: date
    new_start_time: Optional[str] = None
    new_end_time: Optional[str] = None
    is_holiday: bool = False
    notes: Optional[str] = None

    @field_validator("new_start_time", "new_end_time")
    @classmethod
    def check_time(cls, v):
        return validate_time(v)


class SlotExceptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    slot_id: str
    date: date
    new_start_time: Optional[str] = None
    new_end_time: Optional[str] = None
    is_holiday: bool
    notes: Optional[str] = None


class TimeWindowResponse(BaseModel):
    date: str
    start_time: str
    end_time: str
    slot_id: Optional[str] = None
    is_available: bool


class DayAvailabilityResponse(BaseModel):
    date: str
    slot_id: Optional[str] = None
    is_available: bool
    windows: list[TimeWindowResponse]


class SpanAvailabilityResponse(BaseModel):
    start_date: str
    start_time: Optional[str] = None
    is_bookable: bool
    common_times: list[str]
    days: list[DayAvailabilityResponse]
