"""
Service model - cleaning services that can be booked.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4
import enum

from sqlalchemy import (
    String,
    Numeric,
    Integer,
    Boolean,
    DateTime,
    Enum as SQLEnum,
    CheckConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from zynkly.lib.db import Base


# Quick services are sold as a fixed short visit
QUICK_SERVICE_DURATION_MINUTES = 15


class ServiceCategory(str, enum.Enum):
    """Service category enumeration."""
    DEEP_CLEANING = "deep-cleaning"
    REGULAR_CLEANING = "regular-cleaning"
    MOVE_IN_OUT = "move-in-out"
    OFFICE_CLEANING = "office-cleaning"
    POST_CONSTRUCTION = "post-construction"
    QUICK_SERVICE = "quick-service"


class Service(Base):
    """
    Service entity - bookable services.
    Inactive services are hidden from the public catalog but kept for
    historical bookings.
    """
    __tablename__ = "services"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    # Service details
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(String(2000), nullable=False)
    category: Mapped[ServiceCategory] = mapped_column(
        SQLEnum(
            ServiceCategory,
            name="service_category",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        index=True,
    )
    image: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Pricing: base (one-time) price plus optional per-plan prices
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    hourly_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    daily_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    weekly_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    monthly_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    yearly_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    duration: Mapped[int] = mapped_column(Integer, nullable=False, comment="Minutes")

    # Status
    is_quick_service: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="service_price_non_negative"),
        CheckConstraint("duration > 0", name="service_duration_positive"),
    )

    def plan_price(self, plan: str) -> Optional[Decimal]:
        """Return the configured price for a pricing plan, or None."""
        return getattr(self, f"{plan}_price", None)

    @property
    def pricing_plans(self) -> dict:
        return {
            "hourly": self.hourly_price,
            "daily": self.daily_price,
            "weekly": self.weekly_price,
            "monthly": self.monthly_price,
            "yearly": self.yearly_price,
        }

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name={self.name}, category={self.category})>"
