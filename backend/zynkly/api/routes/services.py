"""
Services API routes.

The catalog is public to read; writes are admin-only. Deleting a service only
deactivates it so existing bookings keep their reference.
"""
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from zynkly.api.dependencies import get_db, require_admin
from zynkly.api.middleware.error_handler import BadRequestException, NotFoundException
from zynkly.api.schemas import CamelModel, MessageResponse, ServiceResponse
from zynkly.lib.logging import get_logger
from zynkly.models.services import QUICK_SERVICE_DURATION_MINUTES, Service, ServiceCategory
from zynkly.models.users import User


logger = get_logger(__name__)

PLAN_NAMES = ("hourly", "daily", "weekly", "monthly", "yearly")


# Pydantic schemas
class PricingPlansIn(CamelModel):
    hourly: Optional[Decimal] = Field(None, ge=0)
    daily: Optional[Decimal] = Field(None, ge=0)
    weekly: Optional[Decimal] = Field(None, ge=0)
    monthly: Optional[Decimal] = Field(None, ge=0)
    yearly: Optional[Decimal] = Field(None, ge=0)


class ServiceCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=2000)
    category: ServiceCategory
    price: Decimal = Field(..., ge=0)
    pricing_plans: Optional[PricingPlansIn] = None
    duration: Optional[int] = Field(None, gt=0, description="Minutes")
    image: Optional[str] = Field(None, max_length=1000)
    is_quick_service: bool = False
    is_active: bool = True


class ServiceUpdate(CamelModel):
    """Partial update; omitted fields are left alone."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    category: Optional[ServiceCategory] = None
    price: Optional[Decimal] = Field(None, ge=0)
    pricing_plans: Optional[PricingPlansIn] = None
    duration: Optional[int] = Field(None, gt=0)
    image: Optional[str] = Field(None, max_length=1000)
    is_quick_service: Optional[bool] = None
    is_active: Optional[bool] = None


# Router
router = APIRouter(prefix="/services", tags=["services"])


def _get_service(db: Session, service_id: UUID) -> Service:
    service = db.get(Service, service_id)
    if service is None:
        raise NotFoundException("Service", str(service_id))
    return service


def _apply_plans(service: Service, plans: PricingPlansIn, partial: bool) -> None:
    provided = plans.model_fields_set if partial else set(PLAN_NAMES)
    for plan in PLAN_NAMES:
        if plan in provided:
            setattr(service, f"{plan}_price", getattr(plans, plan))


@router.get("", response_model=List[ServiceResponse])
def list_services(
    category: Optional[ServiceCategory] = Query(None, description="Filter by category"),
    db: Session = Depends(get_db),
) -> List[ServiceResponse]:
    """
    List active services, newest first.

    Query parameters:
    - category: Filter by service category
    """
    stmt = select(Service).where(Service.is_active.is_(True))
    if category:
        stmt = stmt.where(Service.category == category)
    stmt = stmt.order_by(Service.created_at.desc())

    services = db.execute(stmt).scalars().all()
    return [ServiceResponse.from_model(s) for s in services]


@router.get("/{service_id}", response_model=ServiceResponse)
def get_service(service_id: UUID, db: Session = Depends(get_db)) -> ServiceResponse:
    return ServiceResponse.from_model(_get_service(db, service_id))


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
    payload: ServiceCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ServiceResponse:
    """Add a service to the catalog. Quick services always last 15 minutes."""
    if payload.is_quick_service:
        duration = QUICK_SERVICE_DURATION_MINUTES
    elif payload.duration is None:
        raise BadRequestException("Duration is required")
    else:
        duration = payload.duration

    service = Service(
        name=payload.name.strip(),
        description=payload.description.strip(),
        category=payload.category,
        price=payload.price,
        duration=duration,
        image=payload.image,
        is_quick_service=payload.is_quick_service,
        is_active=payload.is_active,
    )
    if payload.pricing_plans is not None:
        _apply_plans(service, payload.pricing_plans, partial=False)

    db.add(service)
    db.commit()
    db.refresh(service)

    logger.info("Service created", extra={"service_id": str(service.id), "admin_id": str(admin.id)})
    return ServiceResponse.from_model(service)


@router.put("/{service_id}", response_model=ServiceResponse)
def update_service(
    service_id: UUID,
    payload: ServiceUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ServiceResponse:
    """Update the given fields. Existing bookings keep their captured price."""
    service = _get_service(db, service_id)

    changes = payload.model_dump(exclude_unset=True, exclude={"pricing_plans"})
    for field, value in changes.items():
        if value is None:
            # Explicit nulls only make sense for optional columns
            if field != "image":
                continue
        setattr(service, field, value)

    if payload.pricing_plans is not None:
        _apply_plans(service, payload.pricing_plans, partial=True)

    if service.is_quick_service:
        service.duration = QUICK_SERVICE_DURATION_MINUTES

    db.commit()
    db.refresh(service)

    logger.info(
        "Service updated",
        extra={"service_id": str(service.id), "admin_id": str(admin.id), "fields": sorted(changes)},
    )
    return ServiceResponse.from_model(service)


@router.delete("/{service_id}", response_model=MessageResponse)
def delete_service(
    service_id: UUID,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Soft delete: the service disappears from the public catalog."""
    service = _get_service(db, service_id)
    service.is_active = False
    db.commit()

    logger.info("Service deactivated", extra={"service_id": str(service.id), "admin_id": str(admin.id)})
    return MessageResponse(message="Service deleted")
