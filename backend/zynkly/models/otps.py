"""
OTP model - short-lived email verification codes.
"""
from datetime import datetime, timezone
from uuid import UUID, uuid4
import enum

from sqlalchemy import (
    String,
    Integer,
    Boolean,
    DateTime,
    Enum as SQLEnum,
    Index,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from zynkly.lib.db import Base


class OTPPurpose(str, enum.Enum):
    """What a code proves control of the email address for."""
    REGISTRATION = "registration"
    PASSWORD_RESET = "password-reset"


class OTP(Base):
    """
    OTP entity - at most one row per (email, purpose).
    Rows are deleted on expiry or lockout; a used code stays as verified
    until it expires or a new code replaces it.
    """
    __tablename__ = "otps"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    purpose: Mapped[OTPPurpose] = mapped_column(
        SQLEnum(
            OTPPurpose,
            name="otp_purpose",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=OTPPurpose.REGISTRATION,
    )

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_otps_email_purpose", "email", "purpose"),
    )

    def __repr__(self) -> str:
        return f"<OTP(email={self.email}, purpose={self.purpose}, attempts={self.attempts})>"
