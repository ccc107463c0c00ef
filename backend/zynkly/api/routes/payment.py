"""
Payment routes.

- POST /payment/create-order: Open a provider order for the checkout total
- POST /payment/verify-payment: Check the signed callback and confirm bookings
"""
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from zynkly.api.dependencies import (
    get_current_user,
    get_db,
    get_notification_service,
    get_payment_provider,
)
from zynkly.api.middleware.error_handler import BadRequestException
from zynkly.models.users import User
from zynkly.services.notification_service import NotificationService
from zynkly.services.payment_service import PaymentService, RazorpayProvider


router = APIRouter(prefix="/payment", tags=["payment"])


class CreateOrderRequest(BaseModel):
    amount: Optional[Decimal] = Field(None, description="Amount in rupees")
    currency: str = Field("INR", min_length=3, max_length=3)


class CreateOrderResponse(BaseModel):
    orderId: str
    amount: int = Field(..., description="Amount in paise")
    currency: str


class VerifyPaymentRequest(BaseModel):
    """Fields posted by the checkout widget after a successful payment."""
    model_config = ConfigDict(populate_by_name=True)

    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    booking_ids: List[UUID] = Field(default_factory=list, alias="bookingIds")


class VerifyPaymentResponse(BaseModel):
    success: bool
    message: str
    paymentId: str


@router.post("/create-order", response_model=CreateOrderResponse)
def create_order(
    payload: CreateOrderRequest,
    user: User = Depends(get_current_user),
    provider: RazorpayProvider = Depends(get_payment_provider),
) -> CreateOrderResponse:
    """
    Create a provider order.

    Raises:
        400: Missing or non-positive amount
        502: Provider rejected the request
        503: Provider not configured
    """
    if payload.amount is None:
        raise BadRequestException("Invalid amount")

    order = provider.create_order(payload.amount, payload.currency.upper())
    return CreateOrderResponse(
        orderId=order["id"],
        amount=order["amount"],
        currency=order["currency"],
    )


@router.post("/verify-payment", response_model=VerifyPaymentResponse)
async def verify_payment(
    payload: VerifyPaymentRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    provider: RazorpayProvider = Depends(get_payment_provider),
    notifications: NotificationService = Depends(get_notification_service),
) -> VerifyPaymentResponse:
    """
    Verify the callback signature and mark the listed bookings paid and confirmed.

    Raises:
        400: Missing fields or signature mismatch (bookings untouched)
        503: Provider secret not configured
    """
    if not (payload.razorpay_order_id and payload.razorpay_payment_id and payload.razorpay_signature):
        raise BadRequestException("Missing payment details")

    PaymentService(db, provider, notifications).confirm_payment(
        user,
        order_id=payload.razorpay_order_id,
        payment_id=payload.razorpay_payment_id,
        signature=payload.razorpay_signature,
        booking_ids=payload.booking_ids,
    )
    return VerifyPaymentResponse(
        success=True,
        message="Payment verified successfully",
        paymentId=payload.razorpay_payment_id,
    )
