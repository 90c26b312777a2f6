"""
Payment service - Checkout saga over the PhonePe gateway

An order reserves its bookings as payment_pending. A confirmed payment
books them, invoices the purchase and notifies the customer; a failed one
releases them. Orders the gateway never resolves are released by
release_stale_payments after PAYMENT_HOLD_MINUTES.
"""

import json
import logging
from datetime import timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import ANALYSIS_PRICE, CURRENCY, PAYMENT_HOLD_MINUTES, PHONEPE_SALT_INDEX, PHONEPE_SALT_KEY
from ...models import Booking, BookingGroup, Payment
from ...services.notification_service import send_notification
from ...shared.timeutils import utcnow
from ...webhook_security import verify_phonepe_signature
from ..bookings.repository import BookingRepository
from ..bookings.service import BookingService
from ..invoices.service import InvoiceService
from ..slots.availability import find_conflict
from ..users.schemas import UserProfile
from .phonepe_service import (
    PaymentGatewayError,
    PhonePeClient,
    decode_callback_body,
    generate_merchant_order_id,
    state_to_status,
)
from .repository import PaymentRepository
from .schemas import BookingMetadata

logger = logging.getLogger(__name__)

PAYMENT_FAILED_REASON = "payment failed"
PAYMENT_EXPIRED_REASON = "payment not completed in time"


def gateway_http_error(error: PaymentGatewayError) -> HTTPException:
    return HTTPException(status_code=502, detail=str(error))


class PaymentService:
    """Service layer for payments and the booking saga"""

    def __init__(self, db: Session, gateway: Optional[PhonePeClient] = None):
        self.db = db
        self.repo = PaymentRepository()
        self.bookings = BookingRepository()
        self.booking_service = BookingService(db)
        self.gateway = gateway or PhonePeClient()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_payment(self, payment_id: str) -> Payment:
        payment = self.repo.get_by_id(self.db, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        return payment

    def get_by_transaction(self, merchant_order_id: str) -> Payment:
        payment = self.repo.get_by_transaction_id(self.db, merchant_order_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment record not found")
        return payment

    def list_payments(self, status: Optional[str] = None) -> list[Payment]:
        return self.repo.list_payments(self.db, status)

    def payment_bookings(self, payment: Payment) -> list[Booking]:
        if payment.group_id:
            group = self.bookings.get_group(self.db, payment.group_id)
            return [b for b in group.bookings if b.status != "rescheduled"] if group else []
        if payment.booking_id:
            booking = self.bookings.get_by_id(self.db, payment.booking_id)
            return [booking] if booking else []
        return []

    # ------------------------------------------------------------------
    # Order creation
    # ------------------------------------------------------------------

    async def create_order(
        self, user_profile: UserProfile, start_date, start_time: str, days: int
    ) -> dict:
        """Reserve the bookings and open a gateway order; a failed order releases them"""
        group = self.booking_service.create_group_booking(
            user_profile, start_date, start_time, days, amount=ANALYSIS_PRICE, status="payment_pending"
        )
        order_id = generate_merchant_order_id()
        metadata = {
            "selected_dates": [b.booking_date.isoformat() for b in group.bookings],
            "slot_ids": [b.slot_id for b in group.bookings],
            "start_time": group.start_time,
            "end_time": group.end_time,
            "user_details": user_profile.model_dump(mode="json"),
        }
        payment = self.repo.create(
            self.db,
            transaction_id=order_id,
            booking_id=group.bookings[0].id,
            group_id=group.id,
            amount=group.amount,
            currency=CURRENCY,
            payment_method="phonepe",
            status="pending",
            booking_metadata=metadata,
        )

        try:
            order = await self.gateway.create_order(
                payment.amount, metadata["user_details"], merchant_order_id=order_id
            )
        except PaymentGatewayError as e:
            self.compensate(payment, gateway_response={"error": str(e), "kind": e.kind})
            raise gateway_http_error(e) from e

        self.repo.update(self.db, payment, gateway_response=order["response"])
        logger.info(f"Order {order_id} opened for group {group.id} ({payment.amount} {payment.currency})")
        return {
            "merchant_order_id": order_id,
            "redirect_url": order["redirect_url"],
            "payment_id": payment.id,
            "group_id": group.id,
            "amount": payment.amount,
            "currency": payment.currency,
        }

    # ------------------------------------------------------------------
    # Confirmation and compensation
    # ------------------------------------------------------------------

    async def verify_payment(self, merchant_order_id: str) -> Payment:
        """Ask the gateway for the order state and settle the payment accordingly"""
        payment = self.get_by_transaction(merchant_order_id)
        if payment.status in ("success", "refunded"):
            return payment

        try:
            result = await self.gateway.check_status(merchant_order_id)
        except PaymentGatewayError as e:
            raise gateway_http_error(e) from e

        return self.apply_status(
            payment,
            result["status"],
            gateway_response=result["response"],
            gateway_payment_id=result.get("transaction_id"),
            payment_method=result.get("payment_method"),
        )

    def apply_status(
        self,
        payment: Payment,
        status: str,
        gateway_response: Optional[dict] = None,
        gateway_payment_id: Optional[str] = None,
        payment_method: Optional[str] = None,
    ) -> Payment:
        if status == "success":
            return self.confirm(payment, gateway_response, gateway_payment_id, payment_method)
        if status == "failed":
            return self.compensate(payment, gateway_response=gateway_response)
        if gateway_response is not None:
            payment = self.repo.update(self.db, payment, gateway_response=gateway_response)
        return payment

    def confirm(
        self,
        payment: Payment,
        gateway_response: Optional[dict] = None,
        gateway_payment_id: Optional[str] = None,
        payment_method: Optional[str] = None,
    ) -> Payment:
        """Mark the payment successful, book its days, invoice it and notify the customer"""
        if payment.status in ("success", "refunded"):
            logger.info(f"Payment {payment.transaction_id} already settled ({payment.status})")
            return payment

        bookings = self.payment_bookings(payment) or self._create_bookings_from_metadata(payment)
        booked = []
        for booking in bookings:
            if booking.status == "payment_pending":
                booking.status = "booked"
            elif booking.status == "cancelled" and booking.cancel_reason in (
                PAYMENT_FAILED_REASON,
                PAYMENT_EXPIRED_REASON,
            ):
                if self._window_taken(booking):
                    logger.error(
                        f"Paid booking {booking.id} on {booking.booking_date} {booking.start_time} "
                        f"was released and its window has been taken"
                    )
                    continue
                booking.status = "booked"
                booking.cancel_reason = None
            if booking.status == "booked":
                booking.amount_paid = payment.amount
                booked.append(booking)

        if payment.group_id:
            group = self.bookings.get_group(self.db, payment.group_id)
            if group:
                group.status = "confirmed"

        primary = booked[0] if booked else (bookings[0] if bookings else None)
        updates = {"status": "success", "paid_at": utcnow()}
        if gateway_response is not None:
            updates["gateway_response"] = gateway_response
        if gateway_payment_id:
            updates["payment_id"] = gateway_payment_id
        if payment_method:
            updates["payment_method"] = payment_method
        if primary is not None and not payment.booking_id:
            updates["booking_id"] = primary.id
        payment = self.repo.update(self.db, payment, **updates)
        logger.info(f"✅ Payment {payment.transaction_id} confirmed, {len(booked)} bookings booked")

        if primary is not None:
            invoice = InvoiceService(self.db).generate_invoice(primary.id, None, payment.amount)
            dates = ", ".join(b.booking_date.isoformat() for b in booked)
            send_notification(
                self.db,
                primary.user,
                "confirmation",
                f"Your payment of {payment.amount} {payment.currency} has been received. "
                f"Booked: {dates} at {primary.start_time}. Invoice {invoice.invoice_number}.",
                channels=("email", "whatsapp"),
            )
        return payment

    def compensate(
        self,
        payment: Payment,
        reason: str = PAYMENT_FAILED_REASON,
        gateway_response: Optional[dict] = None,
    ) -> Payment:
        """Release the bookings held for an unpaid order and mark the payment failed"""
        if payment.status in ("success", "refunded"):
            logger.warning(f"Not compensating settled payment {payment.transaction_id}")
            return payment

        released = 0
        for booking in self.payment_bookings(payment):
            if booking.status == "payment_pending":
                booking.status = "cancelled"
                booking.cancel_reason = reason
                released += 1

        if payment.group_id:
            group: Optional[BookingGroup] = self.bookings.get_group(self.db, payment.group_id)
            if group and group.status == "payment_pending":
                group.status = "cancelled"

        updates = {"status": "failed"}
        if gateway_response is not None:
            updates["gateway_response"] = gateway_response
        payment = self.repo.update(self.db, payment, **updates)
        logger.info(f"❌ Payment {payment.transaction_id} failed ({reason}), {released} bookings released")
        return payment

    def _window_taken(self, booking: Booking) -> bool:
        others = self.bookings.get_by_date(self.db, booking.booking_date)
        return find_conflict(others, booking.booking_date, booking.start_time, exclude_id=booking.id) is not None

    def _create_bookings_from_metadata(self, payment: Payment) -> list[Booking]:
        """Create the user and bookings recorded on the payment, for orders opened without them"""
        metadata = BookingMetadata.parse(payment.booking_metadata)
        if metadata is None or metadata.user_details is None:
            logger.warning(f"Payment {payment.transaction_id} has no usable booking metadata")
            return []

        user = self.booking_service.users.find_or_create(metadata.user_details)
        group = self.bookings.create_group(
            self.db,
            user_id=user.id,
            start_date=min(metadata.selected_dates),
            days=len(metadata.selected_dates),
            start_time=metadata.start_time,
            end_time=metadata.end_time,
            amount=payment.amount,
            status="payment_pending",
        )

        created = []
        for booking_date, slot_id in zip(metadata.selected_dates, metadata.slot_ids):
            if not slot_id:
                logger.warning(f"No slot recorded for {booking_date} on payment {payment.transaction_id}")
                continue
            try:
                created.append(
                    self.booking_service.create_booking(
                        metadata.user_details,
                        slot_id,
                        booking_date,
                        metadata.start_time,
                        metadata.end_time,
                        group_id=group.id,
                        status="payment_pending",
                    )
                )
            except HTTPException as e:
                logger.error(
                    f"Could not create booking for {booking_date} on payment {payment.transaction_id}: {e.detail}"
                )

        payment.group_id = group.id
        self.db.commit()
        logger.info(f"Created {len(created)} bookings from metadata for payment {payment.transaction_id}")
        return created

    # ------------------------------------------------------------------
    # Webhook
    # ------------------------------------------------------------------

    def handle_webhook(self, raw_body: bytes, x_verify: str) -> dict:
        """
        Apply a signed gateway callback to its payment

        Raises:
            WebhookSignatureError: bad signature (401 at the HTTP layer)
            HTTPException: 400 for an unreadable body, 404 for an unknown order
        """
        verify_phonepe_signature(raw_body, x_verify, PHONEPE_SALT_KEY, PHONEPE_SALT_INDEX)

        try:
            body = json.loads(raw_body)
            data = decode_callback_body(body)
        except (ValueError, PaymentGatewayError) as e:
            raise HTTPException(status_code=400, detail="Malformed webhook body") from e

        inner = data.get("data") or {}
        merchant_order_id = (
            inner.get("merchantTransactionId")
            or data.get("merchantTransactionId")
            or inner.get("merchantOrderId")
        )
        if not merchant_order_id:
            raise HTTPException(status_code=400, detail="Missing transaction ID")

        payment = self.get_by_transaction(merchant_order_id)
        state = inner.get("state") or data.get("state") or "UNKNOWN"
        instrument = inner.get("paymentInstrument") or {}
        payment = self.apply_status(
            payment,
            state_to_status(state),
            gateway_response=data,
            gateway_payment_id=inner.get("transactionId"),
            payment_method=instrument.get("type"),
        )
        logger.info(f"📥 Webhook for {merchant_order_id}: state={state}, payment={payment.status}")
        return {"transaction_id": merchant_order_id, "status": payment.status}

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def release_stale_payments(self, hold_minutes: int = PAYMENT_HOLD_MINUTES) -> dict:
        """Fail pending payments and cancel pending bookings older than the hold period"""
        cutoff = utcnow() - timedelta(minutes=hold_minutes)

        failed = 0
        for payment in self.repo.get_pending_before(self.db, cutoff):
            self.compensate(payment, reason=PAYMENT_EXPIRED_REASON)
            failed += 1

        released = 0
        for booking in self.bookings.get_pending_before(self.db, cutoff):
            booking.status = "cancelled"
            booking.cancel_reason = PAYMENT_EXPIRED_REASON
            released += 1
            if booking.group_id:
                group = self.bookings.get_group(self.db, booking.group_id)
                if group and group.status == "payment_pending":
                    group.status = "cancelled"
        self.db.commit()

        if failed or released:
            logger.info(f"Reconciliation: {failed} payments failed, {released} orphaned bookings released")
        return {"payments_failed": failed, "bookings_released": released}

    # ------------------------------------------------------------------
    # Payments taken outside the gateway
    # ------------------------------------------------------------------

    def record_payment(
        self,
        booking_id: str,
        amount: float,
        status: str = "success",
        payment_method: str = "cash",
        payment_id: Optional[str] = None,
    ) -> Payment:
        booking = self.bookings.get_by_id(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")

        payment = self.repo.create(
            self.db,
            transaction_id=generate_merchant_order_id(),
            payment_id=payment_id,
            booking_id=booking.id,
            group_id=booking.group_id,
            amount=amount,
            currency=CURRENCY,
            payment_method=payment_method,
            status="pending",
        )
        logger.info(f"Recording {payment_method} payment of {amount} for booking {booking.id}: {status}")
        return self.apply_status(payment, status)
