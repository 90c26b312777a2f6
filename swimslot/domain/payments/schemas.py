"""Payment domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...config import ANALYSIS_DAYS
from ...shared.validators import validate_time
from ..users.schemas import UserProfile


class CreateOrderRequest(BaseModel):
    """Checkout: reserve consecutive days and open a gateway order for them"""

    user: UserProfile
    start_date: date
    start_time: str
    days: int = Field(ANALYSIS_DAYS, ge=1, le=14)

    @field_validator("start_time")
    @classmethod
    def check_time(cls, v):
        return validate_time(v)


class CreateOrderResponse(BaseModel):
    merchant_order_id: str
    redirect_url: str
    payment_id: str
    group_id: str
    amount: float
    currency: str


class VerifyPaymentRequest(BaseModel):
    merchant_order_id: str


class RecordPaymentRequest(BaseModel):
    """A payment taken outside the gateway (counter, simulated checkout)"""

    booking_id: str
    amount: float = Field(..., ge=0)
    status: Literal["success", "failed"] = "success"
    payment_method: str = "cash"
    payment_id: Optional[str] = None


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    transaction_id: str
    payment_id: Optional[str] = None
    booking_id: Optional[str] = None
    group_id: Optional[str] = None
    amount: float
    currency: Optional[str] = None
    payment_method: Optional[str] = None
    status: str
    booking_metadata: Optional[dict[str, Any]] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class BookingMetadata(BaseModel):
    """
    Booking details stored on a payment at order creation.

    Accepts the current snake_case shape and the older camelCase
    selectedDates/slotId or daysInfo shapes still found on stored payments.
    """

    selected_dates: list[date]
    slot_ids: list[Optional[str]]
    start_time: str
    end_time: str
    user_details: Optional[UserProfile] = None

    @classmethod
    def parse(cls, raw: Optional[dict]) -> Optional["BookingMetadata"]:
        if not raw:
            return None

        start_time = raw.get("start_time") or raw.get("startTime")
        end_time = raw.get("end_time") or raw.get("endTime")
        user_details = raw.get("user_details") or raw.get("userDetails")

        if raw.get("selected_dates") or raw.get("selectedDates"):
            dates = raw.get("selected_dates") or raw.get("selectedDates")
            slot_ids = raw.get("slot_ids") or [raw.get("slot_id") or raw.get("slotId")] * len(dates)
        elif raw.get("days_info") or raw.get("daysInfo"):
            days_info = raw.get("days_info") or raw.get("daysInfo")
            dates = [day.get("date") for day in days_info]
            slot_ids = [(day.get("slot") or {}).get("id") or day.get("slot_id") for day in days_info]
        else:
            return None

        if not start_time or not end_time:
            return None

        return cls(
            selected_dates=dates,
            slot_ids=slot_ids,
            start_time=validate_time(start_time),
            end_time=validate_time(end_time),
            user_details=user_details,
        )
