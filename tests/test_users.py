"""Tests for registration, passcodes and bearer sessions."""

import logging
from datetime import timedelta

import pytest
from conftest import make_profile, make_user
from fastapi import HTTPException

from swimslot.auth import open_session, resolve_session, revoke_session
from swimslot.domain.users.service import UserService
from swimslot.models import Notification
from swimslot.passcodes import FixedPasscodeDelivery, NotificationPasscodeDelivery, generate_otp
from swimslot.services.notification_service import send_notification
from swimslot.shared.timeutils import utcnow


class TestRegistration:
    def test_register_issues_four_digit_code(self, db):
        user = UserService(db, passcodes=NotificationPasscodeDelivery()).register(make_profile())

        assert user.is_verified is False
        assert len(user.otp_code) == 4 and user.otp_code.isdigit()
        assert user.otp_expiry > utcnow()
        otp = db.query(Notification).filter(Notification.type == "otp").one()
        assert user.otp_code in otp.message

    def test_duplicate_email_is_409(self, db):
        service = UserService(db, passcodes=NotificationPasscodeDelivery())
        service.register(make_profile())
        with pytest.raises(HTTPException) as exc:
            service.register(make_profile(email="Swimmer@Example.com"))
        assert exc.value.status_code == 409

    def test_admin_email_becomes_admin(self, db):
        user = UserService(db).find_or_create(make_profile(email="admin@example.com"))
        assert user.is_admin is True

    def test_generated_codes_are_numeric(self):
        code = generate_otp(6)
        assert len(code) == 6 and code.isdigit()


class TestVerifyOtp:
    def test_correct_code_opens_session(self, db):
        service = UserService(db, passcodes=NotificationPasscodeDelivery())
        user = service.register(make_profile())

        session = service.verify_otp(user.email, user.otp_code)

        db.refresh(user)
        assert user.is_verified is True
        assert user.otp_code is None
        assert session.user_id == user.id
        assert resolve_session(db, session.token).email == user.email

    def test_wrong_code_is_400(self, db):
        service = UserService(db, passcodes=NotificationPasscodeDelivery())
        user = service.register(make_profile())
        wrong = "0000" if user.otp_code != "0000" else "1111"
        with pytest.raises(HTTPException) as exc:
            service.verify_otp(user.email, wrong)
        assert exc.value.status_code == 400

    def test_expired_code_is_400(self, db):
        service = UserService(db, passcodes=NotificationPasscodeDelivery())
        user = service.register(make_profile())
        user.otp_expiry = utcnow() - timedelta(minutes=1)
        db.commit()
        with pytest.raises(HTTPException) as exc:
            service.verify_otp(user.email, user.otp_code)
        assert exc.value.status_code == 400

    def test_unknown_email_is_404(self, db):
        with pytest.raises(HTTPException) as exc:
            UserService(db).verify_otp("nobody@example.com", "1234")
        assert exc.value.status_code == 404

    def test_fixed_code_always_verifies(self, db):
        service = UserService(db, passcodes=FixedPasscodeDelivery("8452"))
        user = service.register(make_profile())
        assert user.otp_code == "8452"
        assert service.verify_otp(user.email, "8452").user_id == user.id


class TestSessions:
    def test_live_session_resolves(self, db):
        user = make_user(db, is_admin=True)
        context = resolve_session(db, open_session(db, user).token)
        assert context.user_id == user.id
        assert context.is_admin is True

    def test_unknown_token_is_rejected(self, db):
        assert resolve_session(db, "no-such-token") is None

    def test_expired_session_is_rejected(self, db):
        session = open_session(db, make_user(db), ttl_minutes=-1)
        assert resolve_session(db, session.token) is None

    def test_revoked_session_is_rejected(self, db):
        session = open_session(db, make_user(db))
        assert revoke_session(db, session.token) is True
        assert resolve_session(db, session.token) is None
        assert revoke_session(db, session.token) is False


class TestNotifications:
    def test_each_channel_is_recorded(self, db, caplog):
        user = make_user(db)
        caplog.set_level(logging.INFO, logger="swimslot.services.notification_service")

        result = send_notification(db, user, "reminder", "See you at the pool", channels=("email", "sms"))

        assert result == {"email": "sent", "sms": "sent"}
        assert db.query(Notification).filter(Notification.type == "reminder").count() == 2
        assert "Email recorded for" in caplog.text
        assert "sms message recorded for" in caplog.text
        assert "queued" not in caplog.text

    def test_missing_phone_is_recorded_as_failed(self, db):
        user = make_user(db)
        user.phone = None
        db.commit()

        assert send_notification(db, user, "reminder", "See you", channels=("whatsapp",)) == {"whatsapp": "failed"}
