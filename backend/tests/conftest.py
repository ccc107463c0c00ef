"""
Shared fixtures: an in-memory database per test, a recording mail transport,
a payment provider backed by ``httpx.MockTransport`` and a TestClient wired to
all of them.
"""
import json
import os

# Must be set before anything imports zynkly.lib.settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("EMAIL_PROVIDER", "console")

from decimal import Decimal

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from zynkly.api.app import create_app
from zynkly.api.dependencies import get_db
from zynkly.lib.db import Base, build_engine
from zynkly.lib.jwt import create_access_token
from zynkly.lib.security import hash_password
from zynkly.lib.settings import Settings
from zynkly.models import Service, ServiceCategory, User, UserRole
from zynkly.services.errors import DeliveryError
from zynkly.services.notification_service import MailTransport, NotificationService
from zynkly.services.otp_service import OTPService
from zynkly.services.payment_service import RazorpayProvider


LIVE_KEY_ID = "rzp_live_TESTKEY12345678"
LIVE_KEY_SECRET = "live_secret_for_tests"
FIXED_OTP = "123456"


class RecordingTransport(MailTransport):
    """Keeps every email in memory; can be told to fail."""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, to, content):
        if self.fail:
            raise DeliveryError("Email service unavailable")
        self.sent.append((to, content))

    def subjects_for(self, to):
        return [content.subject for addr, content in self.sent if addr == to]


class RazorpayStub:
    """Answers ``POST /orders`` like the provider does."""

    def __init__(self):
        self.requests = []
        self.status_code = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code >= 400:
            return httpx.Response(
                self.status_code,
                json={"error": {"code": "BAD_REQUEST_ERROR", "description": "Authentication failed"}},
            )
        payload = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "id": f"order_{len(self.requests):04d}",
                "entity": "order",
                "amount": payload["amount"],
                "currency": payload["currency"],
                "receipt": payload["receipt"],
                "status": "created",
            },
        )


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    import zynkly.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fixed_otp(monkeypatch):
    """Make every issued code 123456."""
    monkeypatch.setattr(OTPService, "generate_code", staticmethod(lambda: FIXED_OTP))
    return FIXED_OTP


@pytest.fixture
def mail():
    return RecordingTransport()


@pytest.fixture
def notifications(mail):
    return NotificationService(mail)


@pytest.fixture
def razorpay_stub():
    return RazorpayStub()


@pytest.fixture
def payment_settings():
    return Settings(
        razorpay_key_id=LIVE_KEY_ID,
        razorpay_key_secret=LIVE_KEY_SECRET,
        razorpay_api_base="https://api.razorpay.test/v1",
    )


@pytest.fixture
def provider(payment_settings, razorpay_stub):
    provider = RazorpayProvider(payment_settings, transport=httpx.MockTransport(razorpay_stub))
    yield provider
    provider.close()


@pytest.fixture
def app_factory(session_factory, mail):
    """Build an app on the test database; ``app_factory(payment_provider, mail_transport=None)``."""
    def _make(payment_provider, mail_transport=None):
        app = create_app(mail_transport=mail_transport or mail, payment_provider=payment_provider)

        def override_get_db():
            session = session_factory()
            try:
                yield session
            finally:
                session.close()

        app.dependency_overrides[get_db] = override_get_db
        return app
    return _make


@pytest.fixture
def app(app_factory, provider):
    return app_factory(provider)


@pytest.fixture
def client(app):
    """Test client; entering it runs the lifespan so background emails finish."""
    with TestClient(app) as client:
        yield client


def make_user(db, email, name="Test User", password="secret1", role=UserRole.CUSTOMER):
    user = User(
        email=email,
        name=name,
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_header(user):
    token = create_access_token(str(user.id), user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer(db):
    return make_user(db, "customer@example.com", name="Casey")


@pytest.fixture
def other_customer(db):
    return make_user(db, "other@example.com", name="Olive")


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", name="Admin", role=UserRole.ADMIN)


@pytest.fixture
def service(db):
    service = Service(
        name="Deep Home Cleaning",
        description="Top to bottom clean",
        category=ServiceCategory.DEEP_CLEANING,
        price=Decimal("80.00"),
        weekly_price=Decimal("70.00"),
        duration=180,
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


@pytest.fixture
def customer_headers(customer):
    return auth_header(customer)


@pytest.fixture
def other_headers(other_customer):
    return auth_header(other_customer)


@pytest.fixture
def admin_headers(admin):
    return auth_header(admin)


@pytest.fixture
def user_factory(db):
    """Create extra users: ``user_factory("x@example.com", role=UserRole.ADMIN)``."""
    def _make(email, **kwargs):
        return make_user(db, email, **kwargs)
    return _make
