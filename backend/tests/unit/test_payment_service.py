"""Tests for the payment provider client and payment confirmation."""
import hashlib
import hmac
import json
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import httpx
import pytest
from tenacity import wait_none

from zynkly.lib.settings import Settings
from zynkly.models.bookings import Booking, BookingStatus, PaymentStatus
from zynkly.services.errors import (
    InvalidRequestError,
    PaymentConfigurationError,
    PaymentProviderError,
    PaymentVerificationError,
)
from zynkly.services.payment_service import (
    PaymentService,
    ProviderState,
    RazorpayProvider,
    compute_signature,
    to_minor_units,
)


def _provider(key_id, key_secret, handler=None):
    config = Settings(razorpay_key_id=key_id, razorpay_key_secret=key_secret)
    transport = httpx.MockTransport(handler) if handler else None
    return RazorpayProvider(config, transport=transport)


def _booking(db, user, service, price="80.00"):
    booking = Booking(
        user_id=user.id,
        service_id=service.id,
        date=date(2026, 11, 2),
        time="10:00",
        street="1 Main St",
        city="Pune",
        state="MH",
        zip_code="411001",
        total_price=Decimal(price),
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


@pytest.mark.unit
@pytest.mark.parametrize("amount,expected", [
    (Decimal("80"), 8000),
    (Decimal("99.99"), 9999),
    (Decimal("0.005"), 1),
])
def test_to_minor_units(amount, expected):
    assert to_minor_units(amount) == expected


@pytest.mark.unit
def test_compute_signature_matches_hmac_sha256():
    signature = compute_signature("secret", "order_1", "pay_1")

    expected = hmac.new(b"secret", b"order_1|pay_1", hashlib.sha256).hexdigest()
    assert signature == expected
    assert signature != compute_signature("secret", "order_1", "pay_2")


@pytest.mark.unit
@pytest.mark.parametrize("key_id,key_secret", [
    ("", ""),
    ("your_razorpay_key_id", "your_razorpay_key_secret"),
    ("rzp_test_abc123", "secret"),
    ("live_abc123", "secret"),
])
def test_misconfigured_provider_fails_and_retries(key_id, key_secret):
    provider = _provider(key_id, key_secret)

    for _ in range(2):
        with pytest.raises(PaymentConfigurationError) as exc_info:
            provider.create_order(Decimal("10"))
        assert exc_info.value.code == "PAYMENT_PROVIDER_NOT_CONFIGURED"
        assert provider.state == ProviderState.FAILED


@pytest.mark.unit
def test_amount_checked_before_configuration():
    provider = _provider("", "")

    with pytest.raises(InvalidRequestError, match="Invalid amount"):
        provider.create_order(Decimal("0"))
    assert provider.state == ProviderState.UNINITIALIZED


@pytest.mark.unit
def test_create_order_posts_minor_units(provider, razorpay_stub):
    order = provider.create_order(Decimal("200"), "INR")

    assert provider.state == ProviderState.READY
    assert order["amount"] == 20000
    assert order["currency"] == "INR"

    request = razorpay_stub.requests[0]
    assert request.method == "POST"
    assert request.url.path.endswith("/orders")
    assert request.headers["authorization"].startswith("Basic ")
    body = json.loads(request.content)
    assert body["receipt"].startswith("receipt_")


@pytest.mark.unit
def test_create_order_provider_rejection(provider, razorpay_stub):
    razorpay_stub.status_code = 401

    with pytest.raises(PaymentProviderError, match="Authentication failed"):
        provider.create_order(Decimal("10"))


@pytest.mark.unit
def test_create_order_retries_transport_errors(payment_settings, monkeypatch):
    calls = []

    def flaky(request):
        calls.append(request)
        if len(calls) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"id": "order_x", "amount": 1000, "currency": "INR"})

    provider = RazorpayProvider(payment_settings, transport=httpx.MockTransport(flaky))
    monkeypatch.setattr(RazorpayProvider._post_order.retry, "wait", wait_none())

    order = provider.create_order(Decimal("10"))

    assert order["id"] == "order_x"
    assert len(calls) == 3


@pytest.mark.unit
def test_verify_signature(provider):
    good = compute_signature(provider.secret, "order_1", "pay_1")

    assert provider.verify_signature("order_1", "pay_1", good)
    tampered = ("0" if good[0] != "0" else "1") + good[1:]
    assert not provider.verify_signature("order_1", "pay_1", tampered)
    assert not provider.verify_signature("order_1", "pay_1", "")


@pytest.mark.unit
def test_confirm_payment_marks_whole_batch(db, provider, customer, service):
    notifications = MagicMock()
    first = _booking(db, customer, service)
    second = _booking(db, customer, service, price="120.00")
    signature = compute_signature(provider.secret, "order_1", "pay_1")

    confirmed = PaymentService(db, provider, notifications).confirm_payment(
        customer, "order_1", "pay_1", signature, [first.id, second.id],
    )

    assert {b.id for b in confirmed} == {first.id, second.id}
    db.expire_all()
    for booking_id in (first.id, second.id):
        booking = db.get(Booking, booking_id)
        assert booking.payment_status == PaymentStatus.PAID
        assert booking.status == BookingStatus.CONFIRMED
        assert booking.payment_id == "pay_1"
        assert booking.provider_order_id == "order_1"
    assert notifications.notify_booking_confirmed.call_count == 2


@pytest.mark.unit
def test_verify_signature_rejects_any_single_character_change(provider):
    good = compute_signature(provider.secret, "order_1", "pay_1")
    assert provider.verify_signature("order_1", "pay_1", good)

    for position, char in enumerate(good):
        flipped = "0" if char != "0" else "f"
        tampered = good[:position] + flipped + good[position + 1:]
        assert not provider.verify_signature("order_1", "pay_1", tampered), position


@pytest.mark.unit
@pytest.mark.parametrize("position", [0, 1, 31, 32, 63])
def test_tampered_signature_changes_nothing(db, provider, customer, service, position):
    notifications = MagicMock()
    booking = _booking(db, customer, service)
    good = compute_signature(provider.secret, "order_1", "pay_1")
    flipped = "a" if good[position] != "a" else "b"
    tampered = good[:position] + flipped + good[position + 1:]
    assert len(tampered) == len(good) == 64

    with pytest.raises(PaymentVerificationError, match="Payment verification failed"):
        PaymentService(db, provider, notifications).confirm_payment(
            customer, "order_1", "pay_1", tampered, [booking.id],
        )

    db.expire_all()
    booking = db.get(Booking, booking.id)
    assert booking.payment_status == PaymentStatus.PENDING
    assert booking.status == BookingStatus.PENDING
    notifications.notify_booking_confirmed.assert_not_called()


@pytest.mark.unit
def test_customer_cannot_confirm_foreign_booking(db, provider, customer, other_customer, service):
    theirs = _booking(db, other_customer, service)
    signature = compute_signature(provider.secret, "order_1", "pay_1")

    confirmed = PaymentService(db, provider, MagicMock()).confirm_payment(
        customer, "order_1", "pay_1", signature, [theirs.id],
    )

    assert confirmed == []
    db.expire_all()
    assert db.get(Booking, theirs.id).payment_status == PaymentStatus.PENDING


@pytest.mark.unit
def test_confirm_without_secret(db, customer):
    provider = _provider("", "")

    with pytest.raises(PaymentConfigurationError):
        PaymentService(db, provider, MagicMock()).confirm_payment(
            customer, "order_1", "pay_1", "deadbeef", [],
        )
