"""User domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ...shared.validators import validate_email, validate_phone


class UserProfile(BaseModel):
    """Customer details captured at registration or checkout"""

    name: str
    email: str
    phone: Optional[str] = None
    dob: Optional[date] = None
    gender: Optional[Literal["male", "female", "other"]] = None
    swimming_experience: Optional[Literal["beginner", "intermediate", "advanced"]] = None
    address: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone", "emergency_contact_phone")
    @classmethod
    def check_phone(cls, v):
        if v:
            return validate_phone(v)
        return v

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    dob: Optional[date] = None
    gender: Optional[Literal["male", "female", "other"]] = None
    swimming_experience: Optional[Literal["beginner", "intermediate", "advanced"]] = None
    address: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None

    @field_validator("phone", "emergency_contact_phone")
    @classmethod
    def check_phone(cls, v):
        if v:
            return validate_phone(v)
        return v


class EmailRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class VerifyOTPRequest(BaseModel):
    email: str
    otp: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    phone: Optional[str] = None
    dob: Optional[date] = None
    is_admin: bool
    is_verified: bool
    gender: Optional[str] = None
    swimming_experience: Optional[str] = None
    address: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    created_at: Optional[datetime] = None


class SessionResponse(BaseModel):
    token: str
    expires_at: datetime
    user: UserResponse
