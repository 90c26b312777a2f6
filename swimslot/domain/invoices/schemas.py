"""Invoice domain schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class InvoiceCreate(BaseModel):
    booking_id: str
    amount: float = Field(..., ge=0)


class SendInvoiceRequest(BaseModel):
    channels: list[Literal["email", "sms", "whatsapp"]] = Field(default_factory=lambda: ["email"], min_length=1)


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    booking_id: str
    invoice_number: str
    generated_by: Optional[str] = None
    amount: float
    generated_at: Optional[datetime] = None
    sent_via_email: bool
    sent_via_whatsapp: bool
    sent_via_sms: bool
