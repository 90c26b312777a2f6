"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ...config import ANALYSIS_DAYS, ANALYSIS_PRICE
from ...shared.validators import validate_time
from ..users.schemas import UserProfile

BookingStatus = Literal["payment_pending", "booked", "cancelled", "completed", "rescheduled"]


class BookingCreate(BaseModel):
    """A single day booking"""

    user: UserProfile
    slot_id: str
    booking_date: date
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, v):
        return validate_time(v)

    @model_validator(mode="after")
    def check_order(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class GroupBookingCreate(BaseModel):
    """A purchase of consecutive days at one time of day"""

    user: UserProfile
    start_date: date
    start_time: str
    days: int = Field(ANALYSIS_DAYS, ge=1, le=14)
    amount: float = Field(ANALYSIS_PRICE, ge=0)

    @field_validator("start_time")
    @classmethod
    def check_time(cls, v):
        return validate_time(v)


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class RescheduleRequest(BaseModel):
    new_date: date
    new_start_time: str
    new_end_time: str

    @field_validator("new_start_time", "new_end_time")
    @classmethod
    def check_time(cls, v):
        return validate_time(v)

    @model_validator(mode="after")
    def check_order(self):
        if self.new_end_time <= self.new_start_time:
            raise ValueError("new_end_time must be after new_start_time")
        return self


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    slot_id: str
    group_id: Optional[str] = None
    booking_date: date
    start_time: str
    end_time: str
    status: str
    rescheduled_to: Optional[str] = None
    cancel_reason: Optional[str] = None
    amount_paid: Optional[float] = None
    created_at: Optional[datetime] = None


class BookingGroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    start_date: date
    days: int
    start_time: str
    end_time: str
    amount: float
    status: str
    created_at: Optional[datetime] = None
    bookings: list[BookingResponse] = []
