"""
Booking routes.

Customers see and create their own bookings; admins see all of them and may
move a booking to any status.
"""
from datetime import date as date_type
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import Field, field_validator
from sqlalchemy.orm import Session

from zynkly.api.dependencies import get_current_user, get_db
from zynkly.api.schemas import BookingResponse, CamelModel
from zynkly.models.bookings import BookingPlan, BookingStatus, BookingType, RecurringFrequency
from zynkly.models.users import User
from zynkly.services.booking_service import BookingService


router = APIRouter(prefix="/bookings", tags=["bookings"])


class AddressIn(CamelModel):
    street: str = Field(..., max_length=255)
    city: str = Field(..., max_length=100)
    state: str = Field(..., max_length=100)
    zip_code: str = Field(..., max_length=20)

    @field_validator("street", "city", "state", "zip_code")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Address fields are required")
        return v.strip()


class BookingCreate(CamelModel):
    service_id: UUID
    date: date_type
    time: str = Field(..., min_length=1, max_length=20)
    address: AddressIn
    plan: BookingPlan = BookingPlan.ONE_TIME
    booking_type: BookingType = BookingType.SCHEDULED
    recurring_frequency: Optional[RecurringFrequency] = None
    special_instructions: Optional[str] = Field(None, max_length=2000)


class StatusUpdate(CamelModel):
    status: BookingStatus


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    return BookingService(db)


@router.get("", response_model=List[BookingResponse])
def list_bookings(
    user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    """Own bookings (all bookings for admins), newest first."""
    return [BookingResponse.from_model(b) for b in bookings.list_for(user)]


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: UUID,
    user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    return BookingResponse.from_model(bookings.get_for(user, booking_id))


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreate,
    user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Reserve a service. Payment happens separately via /payment."""
    booking = bookings.create(
        user,
        service_id=payload.service_id,
        booking_date=payload.date,
        time=payload.time.strip(),
        street=payload.address.street,
        city=payload.address.city,
        state=payload.address.state,
        zip_code=payload.address.zip_code,
        plan=payload.plan,
        booking_type=payload.booking_type,
        recurring_frequency=payload.recurring_frequency,
        special_instructions=payload.special_instructions,
    )
    return BookingResponse.from_model(booking)


@router.patch("/{booking_id}/status", response_model=BookingResponse)
def update_booking_status(
    booking_id: UUID,
    payload: StatusUpdate,
    user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Admins may set any status; customers may only cancel their own open bookings."""
    return BookingResponse.from_model(bookings.update_status(user, booking_id, payload.status))
