"""Booking service: reservations and their fulfillment status."""
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from zynkly.lib.logging import get_logger
from zynkly.models.bookings import (
    Booking,
    BookingPlan,
    BookingStatus,
    BookingType,
    PaymentStatus,
    RecurringFrequency,
)
from zynkly.models.services import Service
from zynkly.models.users import User
from zynkly.services.errors import AccessDeniedError, InvalidRequestError, NotFoundError


logger = get_logger(__name__)


def price_for_plan(service: Service, plan: BookingPlan) -> Decimal:
    """Current price of ``service`` under ``plan``; falls back to the base price."""
    if plan != BookingPlan.ONE_TIME:
        plan_price = service.plan_price(plan.value)
        if plan_price is not None:
            return Decimal(plan_price)
    return Decimal(service.price)


class BookingService:
    """Create, read and update bookings on behalf of a user."""

    def __init__(self, session: Session):
        self.session = session

    def list_for(self, user: User) -> list[Booking]:
        """Admins see every booking; customers only their own. Newest first."""
        stmt = select(Booking).order_by(Booking.created_at.desc())
        if not user.is_admin:
            stmt = stmt.where(Booking.user_id == user.id)
        return list(self.session.execute(stmt).unique().scalars().all())

    def _load(self, booking_id: UUID) -> Booking:
        booking = self.session.get(Booking, booking_id, populate_existing=True)
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    def get_for(self, user: User, booking_id: UUID) -> Booking:
        booking = self._load(booking_id)
        if booking.user_id != user.id and not user.is_admin:
            raise AccessDeniedError()
        return booking

    def create(
        self,
        user: User,
        service_id: UUID,
        booking_date: date,
        time: str,
        street: str,
        city: str,
        state: str,
        zip_code: str,
        plan: BookingPlan = BookingPlan.ONE_TIME,
        booking_type: BookingType = BookingType.SCHEDULED,
        recurring_frequency: Optional[RecurringFrequency] = None,
        special_instructions: Optional[str] = None,
    ) -> Booking:
        """Reserve a service for ``user``. No payment is taken here.

        The service's current price is copied into ``total_price``; later
        catalog edits do not touch it.

        Raises:
            NotFoundError: Unknown service
            InvalidRequestError: Recurring booking without a frequency
        """
        service = self.session.get(Service, service_id)
        if service is None:
            raise NotFoundError("Service", str(service_id))

        if booking_type == BookingType.RECURRING and recurring_frequency is None:
            raise InvalidRequestError("Recurring bookings need a frequency")
        if booking_type != BookingType.RECURRING:
            recurring_frequency = None

        booking = Booking(
            user_id=user.id,
            service_id=service.id,
            date=booking_date,
            time=time,
            street=street,
            city=city,
            state=state,
            zip_code=zip_code,
            plan=plan,
            booking_type=booking_type,
            recurring_frequency=recurring_frequency,
            total_price=price_for_plan(service, plan),
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            special_instructions=special_instructions,
        )
        self.session.add(booking)
        self.session.commit()
        self.session.refresh(booking)

        logger.info(
            "Booking created",
            extra={"booking_id": str(booking.id), "service_id": str(service.id)},
        )
        return booking

    def update_status(self, user: User, booking_id: UUID, new_status: BookingStatus) -> Booking:
        """Change a booking's fulfillment status.

        Admins may set any status. Anyone else may only cancel their own
        booking while it is not completed or cancelled. No transition table
        is enforced beyond that.

        Raises:
            NotFoundError: Unknown booking
            AccessDeniedError: Any other combination
        """
        booking = self._load(booking_id)

        if not user.is_admin:
            owns = booking.user_id == user.id
            if not owns or new_status != BookingStatus.CANCELLED or booking.status.is_terminal:
                raise AccessDeniedError()

        previous = booking.status
        booking.status = new_status
        self.session.commit()
        self.session.refresh(booking)

        logger.info(
            "Booking status changed",
            extra={
                "booking_id": str(booking.id),
                "from": previous.value,
                "to": new_status.value,
                "by_admin": user.is_admin,
            },
        )
        return booking
