"""
Admin API routes.

Dashboard statistics and account administration. Every route requires an
admin token.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from zynkly.api.dependencies import get_db, require_admin
from zynkly.api.schemas import (
    AdminStatsResponse,
    BookingResponse,
    MessageResponse,
    MonthlyRevenue,
    ServiceResponse,
    UserResponse,
)
from zynkly.models.users import User
from zynkly.services.admin_service import AdminService


router = APIRouter(prefix="/admin", tags=["admin"])


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    return AdminService(db)


@router.get("/stats", response_model=AdminStatsResponse)
def get_stats(
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
) -> AdminStatsResponse:
    """
    Dashboard figures, computed on every request.

    Returns:
        - totalUsers: customer accounts
        - totalServices: active services
        - totalBookings: all bookings
        - totalRevenue: sum of paid bookings
        - statusCounts: bookings per fulfillment status (all five keys present)
        - recentBookings: ten newest bookings with customer and service
        - monthlyRevenue: paid revenue per month over the last six months
    """
    stats = service.stats()
    return AdminStatsResponse(
        total_users=stats["total_users"],
        total_services=stats["total_services"],
        total_bookings=stats["total_bookings"],
        total_revenue=stats["total_revenue"],
        status_counts=stats["status_counts"],
        recent_bookings=[BookingResponse.from_model(b) for b in stats["recent_bookings"]],
        monthly_revenue=[MonthlyRevenue(**row) for row in stats["monthly_revenue"]],
    )


@router.get("/users", response_model=List[UserResponse], response_model_exclude_none=True)
def list_users(
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
) -> List[UserResponse]:
    """Customer accounts, newest first."""
    return [UserResponse.from_model(u) for u in service.list_customers()]


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: UUID,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
) -> MessageResponse:
    """Remove a customer and their bookings. Admin accounts cannot be deleted."""
    service.delete_user(user_id)
    return MessageResponse(message="User deleted successfully")


@router.get("/services", response_model=List[ServiceResponse])
def list_all_services(
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
) -> List[ServiceResponse]:
    """Every service, including deactivated ones."""
    return [ServiceResponse.from_model(s) for s in service.list_services()]
