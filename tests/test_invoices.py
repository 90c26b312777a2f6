"""Tests for invoice generation and delivery."""

import re
from datetime import date
from unittest.mock import patch

import pytest
from conftest import make_profile, make_slot
from fastapi import HTTPException

from swimslot.domain.bookings.service import BookingService
from swimslot.domain.invoices.service import InvoiceService, generate_invoice_number
from swimslot.models import Invoice, Notification

D = date(2030, 6, 10)
INVOICE_PATTERN = re.compile(r"^INV-(\d{8})-(\d{6})$")


@pytest.fixture
def booking(db):
    slot = make_slot(db, D)
    return BookingService(db).create_booking(make_profile(), slot.id, D, "09:00", "10:00")


class TestInvoiceNumber:
    def test_matches_pattern_with_generation_date(self):
        with patch("swimslot.domain.invoices.service.today", return_value=date(2031, 2, 3)):
            number = generate_invoice_number()
        match = INVOICE_PATTERN.match(number)
        assert match
        assert match.group(1) == "20310203"

    def test_suffix_is_always_six_digits(self):
        for _ in range(200):
            suffix = INVOICE_PATTERN.match(generate_invoice_number(D)).group(2)
            assert 100000 <= int(suffix) <= 999999


class TestGenerateInvoice:
    def test_creates_invoice(self, db, booking):
        invoice = InvoiceService(db).generate_invoice(booking.id, "admin-1", 1500.0)
        assert INVOICE_PATTERN.match(invoice.invoice_number)
        assert invoice.amount == 1500.0
        assert invoice.generated_by == "admin-1"
        assert not (invoice.sent_via_email or invoice.sent_via_sms or invoice.sent_via_whatsapp)

    def test_missing_booking_is_404(self, db):
        with pytest.raises(HTTPException) as exc:
            InvoiceService(db).generate_invoice("missing", None, 100.0)
        assert exc.value.status_code == 404

    def test_second_call_returns_existing_invoice(self, db, booking):
        service = InvoiceService(db)
        first = service.generate_invoice(booking.id, None, 1500.0)
        second = service.generate_invoice(booking.id, None, 1500.0)
        assert first.id == second.id
        assert db.query(Invoice).count() == 1


class TestSendInvoice:
    def test_flags_each_channel_and_notifies(self, db, booking):
        service = InvoiceService(db)
        invoice = service.generate_invoice(booking.id, None, 1500.0)

        sent = service.send_invoice(invoice.id, ["email", "whatsapp"])

        assert sent.sent_via_email is True
        assert sent.sent_via_whatsapp is True
        assert sent.sent_via_sms is False
        rows = db.query(Notification).filter(Notification.type == "invoice").all()
        assert sorted(n.channel for n in rows) == ["email", "whatsapp"]
        assert all(invoice.invoice_number in n.message for n in rows)

    def test_missing_phone_records_failed_sms(self, db, booking):
        booking.user.phone = None
        db.commit()
        service = InvoiceService(db)
        invoice = service.generate_invoice(booking.id, None, 1500.0)

        service.send_invoice(invoice.id, ["sms"])

        row = db.query(Notification).filter(Notification.type == "invoice").one()
        assert row.status == "failed"

    def test_missing_invoice_is_404(self, db):
        with pytest.raises(HTTPException) as exc:
            InvoiceService(db).send_invoice("missing", ["email"])
        assert exc.value.status_code == 404

    def test_unknown_channel_is_400(self, db, booking):
        service = InvoiceService(db)
        invoice = service.generate_invoice(booking.id, None, 1500.0)
        with pytest.raises(HTTPException) as exc:
            service.send_invoice(invoice.id, ["pigeon"])
        assert exc.value.status_code == 400
