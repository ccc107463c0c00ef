"""
Admin service - dashboard statistics and account management.

All figures are computed from the database on every call; nothing is cached.
"""
import calendar
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, extract, func, select
from sqlalchemy.orm import Session

from zynkly.lib.logging import get_logger
from zynkly.models.bookings import Booking, BookingStatus, PaymentStatus
from zynkly.models.services import Service
from zynkly.models.users import User, UserRole
from zynkly.services.errors import AccessDeniedError, NotFoundError


logger = get_logger(__name__)

RECENT_BOOKINGS_LIMIT = 10
REVENUE_MONTHS = 6


def months_ago(now: datetime, months: int) -> datetime:
    """Same day-of-month ``months`` earlier, clamped to the month's last day."""
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


class AdminService:
    """Read-only reporting plus user/service administration."""

    def __init__(self, session: Session):
        self.session = session

    def _count(self, stmt) -> int:
        return self.session.execute(stmt).scalar_one()

    def stats(self, now: Optional[datetime] = None) -> dict:
        """
        Dashboard figures.

        Returns:
            Dict with totals, revenue from paid bookings, counts for every
            fulfillment status, the ten newest bookings and paid revenue per
            month for the trailing six months.
        """
        now = now or datetime.now(timezone.utc)

        total_users = self._count(
            select(func.count()).select_from(User).where(User.role == UserRole.CUSTOMER)
        )
        total_services = self._count(
            select(func.count()).select_from(Service).where(Service.is_active.is_(True))
        )
        total_bookings = self._count(select(func.count()).select_from(Booking))

        total_revenue = self.session.execute(
            select(func.coalesce(func.sum(Booking.total_price), 0))
            .where(Booking.payment_status == PaymentStatus.PAID)
        ).scalar_one()

        status_counts = {status.value: 0 for status in BookingStatus}
        rows = self.session.execute(
            select(Booking.status, func.count()).group_by(Booking.status)
        ).all()
        for status, count in rows:
            status_counts[BookingStatus(status).value] = count

        recent_bookings = list(
            self.session.execute(
                select(Booking)
                .order_by(Booking.created_at.desc())
                .limit(RECENT_BOOKINGS_LIMIT)
            ).unique().scalars().all()
        )

        year_col = extract("year", Booking.created_at).label("year")
        month_col = extract("month", Booking.created_at).label("month")
        monthly_rows = self.session.execute(
            select(
                year_col,
                month_col,
                func.sum(Booking.total_price).label("revenue"),
                func.count().label("count"),
            )
            .where(
                Booking.payment_status == PaymentStatus.PAID,
                Booking.created_at >= months_ago(now, REVENUE_MONTHS),
            )
            .group_by(year_col, month_col)
            .order_by(year_col, month_col)
        ).all()

        monthly_revenue = [
            {
                "year": int(row.year),
                "month": int(row.month),
                "revenue": float(row.revenue or 0),
                "count": row.count,
            }
            for row in monthly_rows
        ]

        return {
            "total_users": total_users,
            "total_services": total_services,
            "total_bookings": total_bookings,
            "total_revenue": float(total_revenue or 0),
            "status_counts": status_counts,
            "recent_bookings": recent_bookings,
            "monthly_revenue": monthly_revenue,
        }

    def list_customers(self) -> list[User]:
        stmt = (
            select(User)
            .where(User.role == UserRole.CUSTOMER)
            .order_by(User.created_at.desc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def delete_user(self, user_id: UUID) -> None:
        """
        Delete a customer together with their bookings.

        Raises:
            NotFoundError: Unknown user
            AccessDeniedError: Target is an admin
        """
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User", str(user_id))
        if user.is_admin:
            raise AccessDeniedError("Cannot delete admin user")

        removed = self.session.execute(
            delete(Booking)
            .where(Booking.user_id == user.id)
            .execution_options(synchronize_session=False)
        ).rowcount
        self.session.delete(user)
        self.session.commit()

        logger.info(
            "User deleted",
            extra={"user_id": str(user_id), "bookings_removed": removed},
        )

    def list_services(self) -> list[Service]:
        """Every service including inactive ones, newest first."""
        stmt = select(Service).order_by(Service.created_at.desc())
        return list(self.session.execute(stmt).scalars().all())
