"""OTP issuance and verification backed by the ``otps`` table.

Lifecycle of a code:
1. ``issue``: delete older codes for (email, purpose), store a fresh one with a
   TTL, email it. Delivery failure removes the row again.
2. ``verify``: checks run in a fixed order (missing, expired, already used,
   locked out, mismatch). A match atomically claims the row (verified=True).
3. A claimed row stays behind as a spent marker (verified=True) until it
   expires or a new code replaces it, so a replay is told the code was used.
   ``consume`` deletes a claimed row when the side effect is refused.
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from zynkly.lib.logging import get_logger
from zynkly.lib.settings import settings
from zynkly.models.otps import OTP, OTPPurpose
from zynkly.services.errors import DeliveryError, OTPError
from zynkly.services.notification_service import NotificationService


logger = get_logger(__name__)

OTP_NOT_FOUND = "OTP not found or expired. Please request a new OTP."
OTP_EXPIRED = "OTP has expired. Please request a new OTP."
OTP_ALREADY_USED = "This OTP has already been used. Please request a new OTP."
OTP_LOCKED_OUT = "Too many failed attempts. Please request a new OTP."


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class OTPService:
    """Generate, store and check one-time passcodes."""

    def __init__(
        self,
        session: Session,
        notifications: NotificationService,
        ttl_seconds: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ):
        self.session = session
        self.notifications = notifications
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.otp_ttl_seconds
        self.max_attempts = max_attempts if max_attempts is not None else settings.otp_max_attempts

    @staticmethod
    def generate_code() -> str:
        """Generate a uniformly random 6-digit code (leading zeros allowed)."""
        return f"{secrets.randbelow(1000000):06d}"

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _find(self, email: str, purpose: OTPPurpose) -> Optional[OTP]:
        stmt = (
            select(OTP)
            .where(OTP.email == email, OTP.purpose == purpose)
            .order_by(OTP.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def _delete(self, record_id) -> None:
        self.session.execute(delete(OTP).where(OTP.id == record_id))
        self.session.commit()

    def purge_expired(self) -> int:
        """Delete every expired row. Returns the number removed."""
        result = self.session.execute(
            delete(OTP)
            .where(OTP.expires_at < self._now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def issue(self, email: str, purpose: OTPPurpose, name: Optional[str] = None) -> None:
        """Create a new code for (email, purpose) and email it.

        Raises:
            DeliveryError: If the email could not be sent; no code is left behind
        """
        email = normalize_email(email)
        code = self.generate_code()

        self.session.execute(delete(OTP).where(OTP.email == email, OTP.purpose == purpose))
        purged = self.purge_expired()
        if purged:
            logger.debug(f"Purged {purged} expired OTP records")

        record = OTP(
            email=email,
            code=code,
            purpose=purpose,
            expires_at=self._now() + timedelta(seconds=self.ttl_seconds),
            attempts=0,
            verified=False,
        )
        self.session.add(record)
        self.session.commit()

        try:
            await self.notifications.send_otp_email(email, code, purpose.value, name)
        except DeliveryError:
            logger.error(
                "OTP delivery failed, discarding code",
                extra={"email": email, "purpose": purpose.value},
            )
            self._delete(record.id)
            raise

        logger.info("OTP issued", extra={"email": email, "purpose": purpose.value})

    def verify(self, email: str, purpose: OTPPurpose, code: str) -> OTP:
        """Check a submitted code and claim it on success.

        Returns:
            The claimed OTP row (verified=True); pass it to ``consume`` if
            the purpose-specific side effect is refused.

        Raises:
            OTPError: One distinct message per rejection reason
        """
        email = normalize_email(email)
        record = self._find(email, purpose)

        if record is None:
            raise OTPError(OTP_NOT_FOUND)

        if self._now() > _as_utc(record.expires_at):
            self._delete(record.id)
            raise OTPError(OTP_EXPIRED)

        if record.verified:
            raise OTPError(OTP_ALREADY_USED)

        if record.attempts >= self.max_attempts:
            self._delete(record.id)
            raise OTPError(OTP_LOCKED_OUT)

        if not secrets.compare_digest(record.code.encode(), code.encode()):
            self.session.execute(
                update(OTP)
                .where(OTP.id == record.id)
                .values(attempts=OTP.attempts + 1)
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
            self.session.refresh(record)
            remaining = max(self.max_attempts - record.attempts, 0)
            logger.info(
                "OTP mismatch",
                extra={"email": email, "purpose": purpose.value, "attempts": record.attempts},
            )
            raise OTPError(f"Invalid OTP. {remaining} attempts remaining.", remaining_attempts=remaining)

        # Only one concurrent submission can flip verified
        claimed = self.session.execute(
            update(OTP)
            .where(OTP.id == record.id, OTP.verified.is_(False))
            .values(verified=True)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        if claimed.rowcount != 1:
            raise OTPError(OTP_ALREADY_USED)

        self.session.refresh(record)
        return record

    def consume(self, record: OTP) -> None:
        """Delete a claimed code whose side effect was refused."""
        self._delete(record.id)
