"""
SQLAlchemy models package.
Import all models here to ensure they're registered with Base.metadata.
"""
from zynkly.models.users import User, UserRole
from zynkly.models.services import Service, ServiceCategory
from zynkly.models.bookings import (
    Booking,
    BookingStatus,
    PaymentStatus,
    BookingPlan,
    BookingType,
    RecurringFrequency,
)
from zynkly.models.otps import OTP, OTPPurpose

__all__ = [
    "User",
    "UserRole",
    "Service",
    "ServiceCategory",
    "Booking",
    "BookingStatus",
    "PaymentStatus",
    "BookingPlan",
    "BookingType",
    "RecurringFrequency",
    "OTP",
    "OTPPurpose",
]
