"""
Response schemas shared by several routers.

Field names are snake_case in Python and camelCase on the wire.
"""
from datetime import date as date_type, datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from zynkly.models.bookings import Booking
from zynkly.models.services import Service


class CamelModel(BaseModel):
    """Base model serializing to camelCase and accepting either spelling."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserResponse(CamelModel):
    """User profile without credentials."""
    id: UUID
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            role=user.role.value,
            created_at=user.created_at,
        )


class UserSummary(CamelModel):
    id: UUID
    name: str
    email: str


class PricingPlans(CamelModel):
    hourly: Optional[float] = None
    daily: Optional[float] = None
    weekly: Optional[float] = None
    monthly: Optional[float] = None
    yearly: Optional[float] = None


class ServiceResponse(CamelModel):
    """Catalog entry."""
    id: UUID
    name: str
    description: str
    category: str
    price: float
    pricing_plans: PricingPlans
    duration: int
    image: Optional[str] = None
    is_quick_service: bool
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, service: Service) -> "ServiceResponse":
        return cls(
            id=service.id,
            name=service.name,
            description=service.description,
            category=service.category.value,
            price=float(service.price),
            pricing_plans=PricingPlans(
                **{k: float(v) if v is not None else None for k, v in service.pricing_plans.items()}
            ),
            duration=service.duration,
            image=service.image,
            is_quick_service=service.is_quick_service,
            is_active=service.is_active,
            created_at=service.created_at,
            updated_at=service.updated_at,
        )


class ServiceSummary(CamelModel):
    id: UUID
    name: str
    category: str
    price: float
    duration: int
    image: Optional[str] = None


class Address(CamelModel):
    street: str
    city: str
    state: str
    zip_code: str


class BookingResponse(CamelModel):
    """Booking with its service (and customer, for admin views) embedded."""
    id: UUID
    user: Optional[UserSummary] = None
    service: Optional[ServiceSummary] = None
    date: date_type
    time: str
    address: Address
    status: str
    payment_status: str
    plan: str
    booking_type: str
    recurring_frequency: Optional[str] = None
    total_price: float
    payment_id: Optional[str] = None
    razorpay_order_id: Optional[str] = None
    special_instructions: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, booking: Booking) -> "BookingResponse":
        service = booking.service
        user = booking.user
        return cls(
            id=booking.id,
            user=UserSummary(id=user.id, name=user.name, email=user.email) if user else None,
            service=ServiceSummary(
                id=service.id,
                name=service.name,
                category=service.category.value,
                price=float(service.price),
                duration=service.duration,
                image=service.image,
            ) if service else None,
            date=booking.date,
            time=booking.time,
            address=Address(
                street=booking.street,
                city=booking.city,
                state=booking.state,
                zip_code=booking.zip_code,
            ),
            status=booking.status.value,
            payment_status=booking.payment_status.value,
            plan=booking.plan.value,
            booking_type=booking.booking_type.value,
            recurring_frequency=booking.recurring_frequency.value if booking.recurring_frequency else None,
            total_price=float(booking.total_price),
            payment_id=booking.payment_id,
            razorpay_order_id=booking.provider_order_id,
            special_instructions=booking.special_instructions,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class MessageResponse(BaseModel):
    message: str


class MonthlyRevenue(CamelModel):
    year: int
    month: int
    revenue: float
    count: int


class AdminStatsResponse(CamelModel):
    total_users: int
    total_services: int
    total_bookings: int
    total_revenue: float
    # Keys are status values ("in-progress"), not field names
    status_counts: Dict[str, int] = Field(default_factory=dict)
    recent_bookings: List[BookingResponse] = Field(default_factory=list)
    monthly_revenue: List[MonthlyRevenue] = Field(default_factory=list)
