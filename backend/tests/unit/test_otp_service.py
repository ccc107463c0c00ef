"""Tests for OTP issuance and verification."""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from zynkly.models.otps import OTP, OTPPurpose
from zynkly.services.errors import DeliveryError, OTPError
from zynkly.services.otp_service import (
    OTP_ALREADY_USED,
    OTP_EXPIRED,
    OTP_LOCKED_OUT,
    OTP_NOT_FOUND,
    OTPService,
)


EMAIL = "someone@example.com"


@pytest.fixture
def otp_service(db, notifications):
    return OTPService(db, notifications, ttl_seconds=600, max_attempts=5)


def _records(db, email=EMAIL):
    db.expire_all()
    return db.execute(select(OTP).where(OTP.email == email)).scalars().all()


@pytest.mark.unit
def test_generate_code_is_six_digits():
    for _ in range(200):
        code = OTPService.generate_code()
        assert len(code) == 6
        assert code.isdigit()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_issue_stores_record_and_sends_email(db, otp_service, mail, fixed_otp):
    await otp_service.issue("  SomeOne@Example.com ", OTPPurpose.REGISTRATION, name="Sam")

    records = _records(db)
    assert len(records) == 1
    record = records[0]
    assert record.code == fixed_otp
    assert record.attempts == 0
    assert record.verified is False

    assert len(mail.sent) == 1
    to, content = mail.sent[0]
    assert to == EMAIL
    assert fixed_otp in content.text
    assert "Hello Sam" in content.text


@pytest.mark.unit
@pytest.mark.asyncio
async def test_reissue_invalidates_previous_code(db, otp_service, monkeypatch):
    codes = iter(["111111", "222222"])
    monkeypatch.setattr(OTPService, "generate_code", staticmethod(lambda: next(codes)))

    await otp_service.issue(EMAIL, OTPPurpose.REGISTRATION)
    await otp_service.issue(EMAIL, OTPPurpose.REGISTRATION)

    assert [r.code for r in _records(db)] == ["222222"]
    with pytest.raises(OTPError, match="Invalid OTP"):
        otp_service.verify(EMAIL, OTPPurpose.REGISTRATION, "111111")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_purposes_are_independent(db, otp_service, fixed_otp):
    await otp_service.issue(EMAIL, OTPPurpose.REGISTRATION)
    await otp_service.issue(EMAIL, OTPPurpose.PASSWORD_RESET)

    assert len(_records(db)) == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delivery_failure_removes_record(db, otp_service, mail):
    mail.fail = True

    with pytest.raises(DeliveryError):
        await otp_service.issue(EMAIL, OTPPurpose.REGISTRATION)

    assert _records(db) == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_issue_purges_expired_records(db, otp_service):
    db.add(OTP(
        email="stale@example.com",
        code="000000",
        purpose=OTPPurpose.REGISTRATION,
        expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
    ))
    db.commit()

    await otp_service.issue(EMAIL, OTPPurpose.REGISTRATION)

    assert _records(db, "stale@example.com") == []


@pytest.mark.unit
def test_verify_without_record(otp_service):
    with pytest.raises(OTPError) as exc_info:
        otp_service.verify(EMAIL, OTPPurpose.REGISTRATION, "123456")
    assert exc_info.value.message == OTP_NOT_FOUND


@pytest.mark.unit
@pytest.mark.asyncio
async def test_verify_expired_deletes_record(db, otp_service, fixed_otp):
    await otp_service.issue(EMAIL, OTPPurpose.REGISTRATION)
    record = _records(db)[0]
    record.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
    db.commit()

    with pytest.raises(OTPError) as exc_info:
        otp_service.verify(EMAIL, OTPPurpose.REGISTRATION, fixed_otp)

    assert exc_info.value.message == OTP_EXPIRED
    assert _records(db) == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_wrong_code_increments_attempts_once(db, otp_service, fixed_otp):
    await otp_service.issue(EMAIL, OTPPurpose.REGISTRATION)

    for expected_attempts in range(1, 4):
        with pytest.raises(OTPError) as exc_info:
            otp_service.verify(EMAIL, OTPPurpose.REGISTRATION, "999999")
        assert _records(db)[0].attempts == expected_attempts
        assert exc_info.value.remaining_attempts == 5 - expected_attempts
        assert exc_info.value.message == f"Invalid OTP. {5 - expected_attempts} attempts remaining."


@pytest.mark.unit
@pytest.mark.asyncio
async def test_lockout_after_five_wrong_codes(db, otp_service, fixed_otp):
    await otp_service.issue(EMAIL, OTPPurpose.REGISTRATION)

    for _ in range(5):
        with pytest.raises(OTPError):
            otp_service.verify(EMAIL, OTPPurpose.REGISTRATION, "999999")

    with pytest.raises(OTPError) as exc_info:
        otp_service.verify(EMAIL, OTPPurpose.REGISTRATION, fixed_otp)

    assert exc_info.value.message == OTP_LOCKED_OUT
    assert _records(db) == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_correct_code_is_claimed_once(db, otp_service, fixed_otp):
    await otp_service.issue(EMAIL, OTPPurpose.REGISTRATION)

    record = otp_service.verify(EMAIL, OTPPurpose.REGISTRATION, fixed_otp)
    assert record.verified is True
    # Kept as a spent marker, not deleted
    kept = _records(db)
    assert [r.id for r in kept] == [record.id]
    assert kept[0].verified is True

    with pytest.raises(OTPError) as exc_info:
        otp_service.verify(EMAIL, OTPPurpose.REGISTRATION, fixed_otp)
    assert exc_info.value.message == OTP_ALREADY_USED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_consume_deletes_record(db, otp_service, fixed_otp):
    await otp_service.issue(EMAIL, OTPPurpose.PASSWORD_RESET)
    record = otp_service.verify(EMAIL, OTPPurpose.PASSWORD_RESET, fixed_otp)

    otp_service.consume(record)

    assert _records(db) == []
    with pytest.raises(OTPError) as exc_info:
        otp_service.verify(EMAIL, OTPPurpose.PASSWORD_RESET, fixed_otp)
    assert exc_info.value.message == OTP_NOT_FOUND
