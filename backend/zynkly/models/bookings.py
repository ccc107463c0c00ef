"""
Booking model - service reservations made by customers.
"""
from datetime import date as date_type, datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4
import enum

from sqlalchemy import (
    String,
    Numeric,
    Date,
    DateTime,
    ForeignKey,
    Enum as SQLEnum,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from zynkly.lib.db import Base


def _values(enum_cls):
    return [m.value for m in enum_cls]


class BookingStatus(str, enum.Enum):
    """Fulfillment status: pending → confirmed → in-progress → completed (or cancelled)."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.COMPLETED, BookingStatus.CANCELLED)


class PaymentStatus(str, enum.Enum):
    """Payment status enumeration."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class BookingPlan(str, enum.Enum):
    """Pricing plan chosen for a booking."""
    ONE_TIME = "one-time"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class BookingType(str, enum.Enum):
    INSTANT = "instant"
    SCHEDULED = "scheduled"
    RECURRING = "recurring"


class RecurringFrequency(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Booking(Base):
    """
    Booking entity - one service visit (or recurring series) for one customer.

    total_price is captured from the service when the booking is created and
    never recalculated. payment_id / provider_order_id are only written by
    verified payment confirmation.
    """
    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    # Relationships
    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    service_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("services.id"),
        nullable=False,
        index=True,
    )

    # Schedule
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    time: Mapped[str] = mapped_column(String(20), nullable=False)

    # Address
    street: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    zip_code: Mapped[str] = mapped_column(String(20), nullable=False)

    # Status
    status: Mapped[BookingStatus] = mapped_column(
        SQLEnum(BookingStatus, name="booking_status", values_callable=_values),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus, name="payment_status", values_callable=_values),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )

    # Plan
    plan: Mapped[BookingPlan] = mapped_column(
        SQLEnum(BookingPlan, name="booking_plan", values_callable=_values),
        nullable=False,
        default=BookingPlan.ONE_TIME,
    )
    booking_type: Mapped[BookingType] = mapped_column(
        SQLEnum(BookingType, name="booking_type", values_callable=_values),
        nullable=False,
        default=BookingType.SCHEDULED,
    )
    recurring_frequency: Mapped[Optional[RecurringFrequency]] = mapped_column(
        SQLEnum(RecurringFrequency, name="recurring_frequency", values_callable=_values),
        nullable=True,
    )

    # Payment
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    provider_order_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)

    special_instructions: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = relationship("User", lazy="joined")
    service = relationship("Service", lazy="joined")

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, status={self.status}, user_id={self.user_id})>"
