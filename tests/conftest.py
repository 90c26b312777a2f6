"""
Shared fixtures: an in-memory database per test, model factories and a
PhonePe gateway backed by httpx.MockTransport.
"""

import os

# Configuration is read at import time, so set it before swimslot is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["PHONEPE_SALT_KEY"] = "test-salt-key"
os.environ["PHONEPE_SALT_INDEX"] = "1"
os.environ["ADMIN_EMAILS"] = "admin@example.com"
os.environ["OTP_MODE"] = "notification"

from datetime import date  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from swimslot import models  # noqa: E402, F401
from swimslot.auth import open_session  # noqa: E402
from swimslot.database import Base  # noqa: E402
from swimslot.domain.payments.phonepe_service import PhonePeClient  # noqa: E402
from swimslot.domain.users.schemas import UserProfile  # noqa: E402
from swimslot.models import Slot, User  # noqa: E402

GATEWAY_URL = "https://gateway.test/apis/pg-sandbox"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def make_slot(
    db,
    start_date: date,
    end_date: date = None,
    start_time: str = "09:00",
    end_time: str = "11:00",
    slot_duration: int = 60,
    is_holiday: bool = False,
) -> Slot:
    slot = Slot(
        start_date=start_date,
        end_date=end_date,
        start_time=start_time,
        end_time=end_time,
        slot_duration=slot_duration,
        is_holiday=is_holiday,
    )
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return slot


def make_profile(email: str = "swimmer@example.com", name: str = "Asha Rao", phone: str = "9876543210"):
    return UserProfile(name=name, email=email, phone=phone)


def make_user(db, email: str = "swimmer@example.com", is_admin: bool = False) -> User:
    user = User(name="Test User", email=email, phone="+919876543210", is_admin=is_admin, is_verified=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(db, email: str = "swimmer@example.com", is_admin: bool = False) -> dict:
    session = open_session(db, make_user(db, email=email, is_admin=is_admin))
    return {"Authorization": f"Bearer {session.token}"}


def phonepe_handler(state: str = "COMPLETED", pay_status: int = 200, pay_body=None):
    """Build a MockTransport handler answering /pg/v1/pay and /pg/v1/status"""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/pg/v1/pay"):
            if pay_body is not None:
                return httpx.Response(pay_status, text=pay_body)
            return httpx.Response(
                pay_status,
                json={
                    "success": True,
                    "code": "PAYMENT_INITIATED",
                    "data": {
                        "instrumentResponse": {
                            "type": "PAY_PAGE",
                            "redirectInfo": {"url": "https://pay.example/checkout", "method": "GET"},
                        }
                    },
                },
            )

        order_id = request.url.path.rsplit("/", 1)[-1]
        return httpx.Response(
            200,
            json={
                "success": state == "COMPLETED",
                "code": "PAYMENT_SUCCESS" if state == "COMPLETED" else "PAYMENT_ERROR",
                "data": {
                    "merchantTransactionId": order_id,
                    "transactionId": "T2406101234",
                    "amount": 150000,
                    "state": state,
                    "paymentInstrument": {"type": "UPI"},
                },
            },
        )

    return handler


def make_gateway(handler) -> PhonePeClient:
    return PhonePeClient(
        merchant_id="MERCHANTTEST",
        salt_key="test-salt-key",
        salt_index="1",
        base_url=GATEWAY_URL,
        transport=httpx.MockTransport(handler),
    )
