"""Tests for the PhonePe client and the checkout saga."""

import base64
import hashlib
import json
from datetime import date, timedelta

import httpx
import pytest
from conftest import make_gateway, make_profile, make_slot, phonepe_handler
from fastapi import HTTPException

from swimslot.config import PHONEPE_SALT_INDEX, PHONEPE_SALT_KEY
from swimslot.domain.bookings.service import BookingService
from swimslot.domain.payments.phonepe_service import (
    PaymentGatewayError,
    decode_callback_body,
    generate_merchant_order_id,
    state_to_status,
)
from swimslot.domain.payments.service import PAYMENT_EXPIRED_REASON, PAYMENT_FAILED_REASON, PaymentService
from swimslot.domain.slots.service import SlotService
from swimslot.models import Booking, BookingGroup, Invoice, Notification, Payment, User
from swimslot.shared.timeutils import utcnow
from swimslot.webhook_security import WebhookSignatureError, compute_checksum, verify_phonepe_signature

D = date(2030, 6, 10)


@pytest.fixture
def span_slot(db):
    return make_slot(db, D, end_date=D + timedelta(days=2))


def signed_callback(payload: dict, encode: bool = True) -> tuple[bytes, str]:
    body = {"response": base64.b64encode(json.dumps(payload).encode()).decode()} if encode else payload
    raw = json.dumps(body).encode()
    return raw, compute_checksum(raw.decode(), PHONEPE_SALT_KEY, PHONEPE_SALT_INDEX)


def group_bookings(db, group_id):
    return db.query(Booking).filter(Booking.group_id == group_id).order_by(Booking.booking_date).all()


class TestChecksums:
    def test_checksum_format(self):
        expected = hashlib.sha256(b"payload/pg/v1/paysalt").hexdigest() + "###1"
        assert compute_checksum("payload/pg/v1/pay", "salt", "1") == expected

    def test_valid_signature_passes(self):
        raw = b'{"response": "abc"}'
        verify_phonepe_signature(raw, compute_checksum(raw.decode(), "salt", "2"), "salt", "2")

    def test_tampered_body_fails(self):
        signature = compute_checksum('{"response": "abc"}', "salt", "1")
        with pytest.raises(WebhookSignatureError):
            verify_phonepe_signature(b'{"response": "abd"}', signature, "salt", "1")

    def test_wrong_salt_index_fails(self):
        raw = b"{}"
        with pytest.raises(WebhookSignatureError):
            verify_phonepe_signature(raw, compute_checksum("{}", "salt", "2"), "salt", "1")

    def test_missing_header_fails(self):
        with pytest.raises(WebhookSignatureError):
            verify_phonepe_signature(b"{}", "", "salt", "1")


class TestGatewayHelpers:
    def test_order_id_format(self):
        order_id = generate_merchant_order_id()
        assert order_id.startswith("OM")
        assert order_id[2:].isdigit()
        assert len(order_id) == 2 + 13 + 6

    @pytest.mark.parametrize(
        "state,status", [("COMPLETED", "success"), ("FAILED", "failed"), ("PENDING", "pending"), (None, "pending")]
    )
    def test_state_mapping(self, state, status):
        assert state_to_status(state) == status

    def test_decode_plain_and_encoded_bodies(self):
        payload = {"data": {"state": "COMPLETED"}}
        encoded = {"response": base64.b64encode(json.dumps(payload).encode()).decode()}
        assert decode_callback_body(encoded) == payload
        assert decode_callback_body(payload) == payload

    def test_decode_garbage_is_malformed(self):
        with pytest.raises(PaymentGatewayError) as exc:
            decode_callback_body({"response": "not base64 json!"})
        assert exc.value.kind == "malformed"


class TestPhonePeClient:
    @pytest.mark.asyncio
    async def test_create_order_signs_payload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["x_verify"] = request.headers["X-VERIFY"]
            return phonepe_handler()(request)

        result = await make_gateway(handler).create_order(
            1500.0, {"email": "a@example.com", "phone": "+919876543210"}, merchant_order_id="OM1"
        )

        encoded = seen["body"]["request"]
        payload = json.loads(base64.b64decode(encoded))
        assert payload["amount"] == 150000
        assert payload["merchantTransactionId"] == "OM1"
        assert payload["paymentInstrument"] == {"type": "PAY_PAGE"}
        assert seen["x_verify"] == compute_checksum(encoded + "/pg/v1/pay", "test-salt-key", "1")
        assert result["redirect_url"] == "https://pay.example/checkout"

    @pytest.mark.asyncio
    async def test_status_converts_amount_and_state(self):
        status = await make_gateway(phonepe_handler("COMPLETED")).check_status("OM1")
        assert status["status"] == "success"
        assert status["amount"] == 1500.0
        assert status["payment_method"] == "UPI"

    @pytest.mark.asyncio
    async def test_non_json_body_is_malformed(self):
        gateway = make_gateway(phonepe_handler(pay_status=502, pay_body="<html>Bad Gateway</html>"))
        with pytest.raises(PaymentGatewayError) as exc:
            await gateway.create_order(100.0, {"email": "a@example.com"})
        assert exc.value.kind == "malformed"

    @pytest.mark.asyncio
    async def test_transport_failure_is_external(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PaymentGatewayError) as exc:
            await make_gateway(handler).check_status("OM1")
        assert exc.value.kind == "external"


class TestCheckoutSaga:
    @pytest.mark.asyncio
    async def test_order_reserves_pending_bookings(self, db, span_slot):
        service = PaymentService(db, gateway=make_gateway(phonepe_handler()))

        order = await service.create_order(make_profile(), D, "10:00", 3)

        payment = db.query(Payment).filter(Payment.transaction_id == order["merchant_order_id"]).one()
        bookings = group_bookings(db, order["group_id"])
        assert payment.status == "pending"
        assert payment.booking_metadata["selected_dates"] == ["2030-06-10", "2030-06-11", "2030-06-12"]
        assert [b.status for b in bookings] == ["payment_pending"] * 3
        assert SlotService(db).check_span(D, "10:00").is_bookable is False

    @pytest.mark.asyncio
    async def test_confirmed_payment_books_and_invoices(self, db, span_slot):
        service = PaymentService(db, gateway=make_gateway(phonepe_handler("COMPLETED")))
        order = await service.create_order(make_profile(), D, "10:00", 3)

        payment = await service.verify_payment(order["merchant_order_id"])

        assert payment.status == "success"
        assert payment.paid_at is not None
        assert payment.payment_method == "UPI"
        bookings = group_bookings(db, order["group_id"])
        assert [b.status for b in bookings] == ["booked"] * 3
        assert db.get(BookingGroup, order["group_id"]).status == "confirmed"
        invoice = db.query(Invoice).one()
        assert invoice.booking_id == bookings[0].id
        assert invoice.amount == payment.amount
        confirmations = db.query(Notification).filter(Notification.type == "confirmation").all()
        assert sorted(n.channel for n in confirmations) == ["email", "whatsapp"]

    @pytest.mark.asyncio
    async def test_verify_twice_keeps_one_invoice(self, db, span_slot):
        service = PaymentService(db, gateway=make_gateway(phonepe_handler("COMPLETED")))
        order = await service.create_order(make_profile(), D, "10:00", 3)
        await service.verify_payment(order["merchant_order_id"])
        await service.verify_payment(order["merchant_order_id"])
        assert db.query(Invoice).count() == 1

    @pytest.mark.asyncio
    async def test_failed_payment_releases_bookings(self, db, span_slot):
        service = PaymentService(db, gateway=make_gateway(phonepe_handler("FAILED")))
        order = await service.create_order(make_profile(), D, "10:00", 3)

        payment = await service.verify_payment(order["merchant_order_id"])

        assert payment.status == "failed"
        bookings = group_bookings(db, order["group_id"])
        assert {(b.status, b.cancel_reason) for b in bookings} == {("cancelled", PAYMENT_FAILED_REASON)}
        assert db.get(BookingGroup, order["group_id"]).status == "cancelled"
        assert SlotService(db).check_span(D, "10:00").is_bookable is True

    @pytest.mark.asyncio
    async def test_gateway_error_on_order_is_compensated(self, db, span_slot):
        service = PaymentService(db, gateway=make_gateway(phonepe_handler(pay_status=500, pay_body="oops")))

        with pytest.raises(HTTPException) as exc:
            await service.create_order(make_profile(), D, "10:00", 3)

        assert exc.value.status_code == 502
        assert db.query(Payment).one().status == "failed"
        assert {b.status for b in db.query(Booking).all()} == {"cancelled"}

    @pytest.mark.asyncio
    async def test_unknown_order_is_404(self, db):
        service = PaymentService(db, gateway=make_gateway(phonepe_handler()))
        with pytest.raises(HTTPException) as exc:
            await service.verify_payment("OM-unknown")
        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_stale_orders_are_released(self, db, span_slot):
        service = PaymentService(db, gateway=make_gateway(phonepe_handler()))
        order = await service.create_order(make_profile(), D, "10:00", 3)
        orphan = BookingService(db).create_booking(
            make_profile(email="other@example.com"), span_slot.id, D, "09:00", "10:00", status="payment_pending"
        )

        long_ago = utcnow() - timedelta(hours=2)
        db.query(Payment).update({Payment.created_at: long_ago})
        db.query(Booking).update({Booking.created_at: long_ago})
        db.commit()

        summary = service.release_stale_payments(hold_minutes=30)

        assert summary == {"payments_failed": 1, "bookings_released": 1}
        assert db.query(Payment).one().status == "failed"
        db.refresh(orphan)
        assert orphan.status == "cancelled"
        assert orphan.cancel_reason == PAYMENT_EXPIRED_REASON
        assert {b.status for b in group_bookings(db, order["group_id"])} == {"cancelled"}

    @pytest.mark.asyncio
    async def test_recent_orders_are_kept(self, db, span_slot):
        service = PaymentService(db, gateway=make_gateway(phonepe_handler()))
        await service.create_order(make_profile(), D, "10:00", 3)
        assert service.release_stale_payments(hold_minutes=30) == {"payments_failed": 0, "bookings_released": 0}

    def test_recorded_cash_payment_confirms_booking(self, db, span_slot):
        booking = BookingService(db).create_booking(make_profile(), span_slot.id, D, "09:00", "10:00")
        payment = PaymentService(db, gateway=make_gateway(phonepe_handler())).record_payment(
            booking.id, 1500.0, "success", "cash"
        )
        assert payment.status == "success"
        assert payment.booking_id == booking.id
        assert db.query(Invoice).filter(Invoice.booking_id == booking.id).count() == 1


class TestWebhook:
    @pytest.mark.asyncio
    async def test_completed_callback_confirms_payment(self, db, span_slot):
        service = PaymentService(db, gateway=make_gateway(phonepe_handler()))
        order = await service.create_order(make_profile(), D, "10:00", 3)
        raw, x_verify = signed_callback(
            {
                "success": True,
                "code": "PAYMENT_SUCCESS",
                "data": {
                    "merchantTransactionId": order["merchant_order_id"],
                    "transactionId": "T1",
                    "state": "COMPLETED",
                    "paymentInstrument": {"type": "CARD"},
                },
            }
        )

        result = service.handle_webhook(raw, x_verify)

        assert result == {"transaction_id": order["merchant_order_id"], "status": "success"}
        assert {b.status for b in group_bookings(db, order["group_id"])} == {"booked"}

    def test_bad_signature_is_rejected(self, db):
        raw, _ = signed_callback({"data": {"merchantTransactionId": "OM1", "state": "COMPLETED"}})
        with pytest.raises(WebhookSignatureError):
            PaymentService(db).handle_webhook(raw, "0" * 64 + "###" + PHONEPE_SALT_INDEX)

    def test_missing_transaction_id_is_400(self, db):
        raw, x_verify = signed_callback({"data": {"state": "COMPLETED"}})
        with pytest.raises(HTTPException) as exc:
            PaymentService(db).handle_webhook(raw, x_verify)
        assert exc.value.status_code == 400

    def test_callback_creates_bookings_from_metadata(self, db, span_slot):
        db.add(
            Payment(
                transaction_id="OM-legacy",
                amount=1500.0,
                status="pending",
                booking_metadata={
                    "selectedDates": ["2030-06-10", "2030-06-11", "2030-06-12"],
                    "slotId": span_slot.id,
                    "startTime": "10:00",
                    "endTime": "11:00",
                    "userDetails": {"name": "Ravi", "email": "ravi@example.com", "phone": "9876500000"},
                },
            )
        )
        db.commit()
        raw, x_verify = signed_callback(
            {"merchantTransactionId": "OM-legacy", "state": "COMPLETED"}, encode=False
        )

        service = PaymentService(db)
        service.handle_webhook(raw, x_verify)
        service.handle_webhook(raw, x_verify)

        user = db.query(User).filter(User.email == "ravi@example.com").one()
        bookings = db.query(Booking).filter(Booking.user_id == user.id).all()
        assert len(bookings) == 3
        assert {b.status for b in bookings} == {"booked"}
        assert {b.amount_paid for b in bookings} == {1500.0}
        payment = db.query(Payment).filter(Payment.transaction_id == "OM-legacy").one()
        assert payment.status == "success"
        assert payment.booking_id in {b.id for b in bookings}
