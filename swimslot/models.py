import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

BOOKING_STATUSES = ("payment_pending", "booked", "cancelled", "completed", "rescheduled")
GROUP_STATUSES = ("payment_pending", "confirmed", "cancelled")
PAYMENT_STATUSES = ("pending", "success", "failed", "refunded")
NOTIFICATION_CHANNELS = ("email", "sms", "whatsapp")
NOTIFICATION_TYPES = ("otp", "confirmation", "reminder", "invoice", "refund", "cancellation")


def generate_id():
    """Generate an opaque unique identifier"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), nullable=True)
    dob = Column(Date, nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    otp_code = Column(String(10), nullable=True)  # Current passcode, cleared on verification
    otp_expiry = Column(DateTime, nullable=True)

    # Optional profile fields
    gender = Column(String(20), nullable=True)  # male, female, other
    swimming_experience = Column(String(20), nullable=True)  # beginner, intermediate, advanced
    address = Column(Text, nullable=True)
    emergency_contact_name = Column(String(255), nullable=True)
    emergency_contact_phone = Column(String(20), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    bookings = relationship("Booking", back_populates="user")
    sessions = relationship("AuthSession", back_populates="user", cascade="all, delete-orphan")


class AuthSession(Base):
    """Bearer session issued after passcode verification"""

    __tablename__ = "auth_sessions"

    id = Column(String(36), primary_key=True, default=generate_id)
    token = Column(String(128), unique=True, index=True, nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())
    expires_at = Column(DateTime, nullable=False)
    revoked_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="sessions")


class Slot(Base):
    """A calendar day's availability window, optionally repeated daily through end_date"""

    __tablename__ = "slots"

    id = Column(String(36), primary_key=True, default=generate_id)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    is_holiday = Column(Boolean, default=False, nullable=False)
    slot_duration = Column(Integer, default=60, nullable=False)  # minutes
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    exceptions = relationship("SlotException", back_populates="slot", cascade="all, delete-orphan")
    bookings = relationship("Booking", back_populates="slot")


class SlotException(Base):
    """Per-date override of a slot's hours or holiday flag"""

    __tablename__ = "slot_exceptions"
    __table_args__ = (UniqueConstraint("slot_id", "date", name="uq_slot_exception_date"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    slot_id = Column(String(36), ForeignKey("slots.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    new_start_time = Column(String(5), nullable=True)
    new_end_time = Column(String(5), nullable=True)
    is_holiday = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)

    slot = relationship("Slot", back_populates="exceptions")


class BookingGroup(Base):
    """One purchase: N consecutive day-bookings sharing a time of day"""

    __tablename__ = "booking_groups"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    days = Column(Integer, nullable=False, default=3)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    amount = Column(Float, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="payment_pending")
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User")
    bookings = relationship("Booking", back_populates="group", order_by="Booking.booking_date")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    slot_id = Column(String(36), ForeignKey("slots.id"), nullable=False, index=True)
    group_id = Column(String(36), ForeignKey("booking_groups.id"), nullable=True, index=True)
    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    status = Column(String(20), nullable=False, default="booked")
    rescheduled_to = Column(String(36), ForeignKey("bookings.id"), nullable=True)
    cancel_reason = Column(Text, nullable=True)
    amount_paid = Column(Float, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="bookings")
    slot = relationship("Slot", back_populates="bookings")
    group = relationship("BookingGroup", back_populates="bookings")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_id)
    transaction_id = Column(String(64), unique=True, index=True, nullable=False)  # Merchant order id
    payment_id = Column(String(128), nullable=True)  # Gateway transaction id
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=True, index=True)
    group_id = Column(String(36), ForeignKey("booking_groups.id"), nullable=True, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(10), default="INR")
    payment_method = Column(String(50), default="phonepe")
    status = Column(String(20), nullable=False, default="pending")

    # Booking details captured at order creation, used if the bookings must be created later
    booking_metadata = Column(JSON, nullable=True)
    gateway_response = Column(JSON, nullable=True)

    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    booking = relationship("Booking")
    group = relationship("BookingGroup")


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=generate_id)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False, index=True)
    invoice_number = Column(String(50), unique=True, nullable=False, index=True)
    generated_by = Column(String(36), nullable=True)
    amount = Column(Float, nullable=False)
    generated_at = Column(DateTime, server_default=func.now())
    sent_via_email = Column(Boolean, default=False, nullable=False)
    sent_via_whatsapp = Column(Boolean, default=False, nullable=False)
    sent_via_sms = Column(Boolean, default=False, nullable=False)

    booking = relationship("Booking")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    channel = Column(String(20), nullable=False)
    type = Column(String(20), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="sent")
    sent_at = Column(DateTime, server_default=func.now())


class CampBooking(Base):
    """Summer camp registrations, written by the camp signup form"""

    __tablename__ = "campbooking"

    id = Column(String(36), primary_key=True, default=generate_id)
    participant_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    age = Column(Integer, nullable=True)
    camp_batch = Column(String(100), nullable=True)
    amount = Column(Float, nullable=True)
    payment_status = Column(String(20), default="pending")
    created_at = Column(DateTime, server_default=func.now())
