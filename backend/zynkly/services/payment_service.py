"""Payment provider client and checkout confirmation.

``RazorpayProvider`` is constructed once by the app factory and injected into
routes. It validates its credentials lazily (uninitialized → verifying →
ready | failed) and retries validation on the next call after a failure.

``PaymentService`` confirms bookings after the provider's signed callback:
the HMAC check is the only proof that a payment happened.
"""
import enum
import hashlib
import hmac
import re
import threading
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence
from uuid import UUID

import httpx
from sqlalchemy import select, update
from sqlalchemy.orm import Session
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from zynkly.lib.logging import get_logger
from zynkly.lib.settings import Settings, settings as default_settings
from zynkly.models.bookings import Booking, BookingStatus, PaymentStatus
from zynkly.models.users import User
from zynkly.services.errors import (
    InvalidRequestError,
    PaymentConfigurationError,
    PaymentProviderError,
    PaymentVerificationError,
)
from zynkly.services.notification_service import NotificationService


logger = get_logger(__name__)

LIVE_KEY_PATTERN = re.compile(r"^rzp_live_[A-Za-z0-9]+$")
PLACEHOLDER_VALUES = {"your_razorpay_key_id", "your_razorpay_key_secret"}
NOT_CONFIGURED_MESSAGE = (
    "Payment gateway not configured. Set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET "
    "to live-mode credentials."
)


class ProviderState(str, enum.Enum):
    """Readiness of the payment provider client."""
    UNINITIALIZED = "uninitialized"
    VERIFYING = "verifying"
    READY = "ready"
    FAILED = "failed"


def to_minor_units(amount: Decimal) -> int:
    """Convert rupees to paise."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    """HMAC-SHA256 hex digest of ``order_id|payment_id`` keyed with the shared secret."""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class RazorpayProvider:
    """Thin client for the Razorpay Orders API."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Args:
            config: Settings holding credentials (defaults to global settings)
            transport: Optional httpx transport, used by tests to stub the API
        """
        config = config or default_settings
        self.key_id = config.razorpay_key_id.strip()
        self.key_secret = config.razorpay_key_secret.strip()
        self.api_base = config.razorpay_api_base.rstrip("/")
        self.timeout = config.payment_timeout_seconds
        self._transport = transport

        self.state = ProviderState.UNINITIALIZED
        self.last_error: Optional[str] = None
        self._client: Optional[httpx.Client] = None
        self._lock = threading.Lock()

    def _check_credentials(self) -> None:
        if not self.key_id or not self.key_secret:
            raise PaymentConfigurationError(NOT_CONFIGURED_MESSAGE)
        if self.key_id in PLACEHOLDER_VALUES or self.key_secret in PLACEHOLDER_VALUES:
            raise PaymentConfigurationError(NOT_CONFIGURED_MESSAGE)
        if self.key_id.startswith("rzp_test_"):
            raise PaymentConfigurationError(
                "Payment gateway is configured with test-mode keys. Live keys are required."
            )
        if not LIVE_KEY_PATTERN.match(self.key_id):
            raise PaymentConfigurationError("RAZORPAY_KEY_ID is not a valid live key id")

    def ensure_ready(self) -> None:
        """Validate credentials and build the HTTP client on first use.

        Raises:
            PaymentConfigurationError: If credentials are missing or not live-mode
        """
        with self._lock:
            if self.state == ProviderState.READY:
                return

            self.state = ProviderState.VERIFYING
            try:
                self._check_credentials()
            except PaymentConfigurationError as e:
                self.state = ProviderState.FAILED
                self.last_error = e.message
                logger.error(f"Payment provider not usable: {e.message}")
                raise

            self._client = httpx.Client(
                base_url=self.api_base,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
                transport=self._transport,
            )
            self.state = ProviderState.READY
            self.last_error = None
            logger.info("Payment provider ready")

    @property
    def secret(self) -> str:
        """Shared secret for callback signatures.

        Raises:
            PaymentConfigurationError: If no secret is configured
        """
        if not self.key_secret or self.key_secret in PLACEHOLDER_VALUES:
            raise PaymentConfigurationError(NOT_CONFIGURED_MESSAGE)
        return self.key_secret

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    def _post_order(self, payload: dict) -> httpx.Response:
        return self._client.post("/orders", json=payload)

    def create_order(self, amount: Decimal, currency: str = "INR") -> dict:
        """Create a provider order for ``amount`` (major units).

        Returns:
            Provider order payload (``id``, ``amount`` in minor units, ``currency``)

        Raises:
            InvalidRequestError: Non-positive amount
            PaymentConfigurationError: Provider not configured
            PaymentProviderError: Provider rejected the request or was unreachable
        """
        if amount is None or Decimal(amount) <= 0:
            raise InvalidRequestError("Invalid amount")

        self.ensure_ready()

        payload = {
            "amount": to_minor_units(amount),
            "currency": currency,
            "receipt": f"receipt_{int(time.time() * 1000)}",
        }
        try:
            response = self._post_order(payload)
        except httpx.TransportError as e:
            raise PaymentProviderError(f"Payment provider unreachable: {e}") from e

        if response.status_code >= 400:
            try:
                description = response.json().get("error", {}).get("description")
            except ValueError:
                description = None
            raise PaymentProviderError(
                description or "Error creating payment order",
                details={"status_code": response.status_code},
            )

        order = response.json()
        logger.info(
            "Payment order created",
            extra={"order_id": order.get("id"), "amount": payload["amount"], "currency": currency},
        )
        return order

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Constant-time check of a callback signature."""
        expected = compute_signature(self.secret, order_id, payment_id)
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))

    def close(self) -> None:
        if self._client is not None:
            self._client.close()


class PaymentService:
    """Confirms bookings once the provider callback checks out."""

    def __init__(
        self,
        session: Session,
        provider: RazorpayProvider,
        notifications: NotificationService,
    ):
        self.session = session
        self.provider = provider
        self.notifications = notifications

    def confirm_payment(
        self,
        user: User,
        order_id: str,
        payment_id: str,
        signature: str,
        booking_ids: Sequence[UUID],
    ) -> list[Booking]:
        """Verify the callback and mark every booking in the batch paid + confirmed.

        The batch is written with one UPDATE in one transaction, so readers
        see either none or all of it. Non-admins can only confirm bookings
        they own.

        Returns:
            The bookings that were confirmed

        Raises:
            PaymentConfigurationError: No shared secret configured
            PaymentVerificationError: Signature mismatch; nothing is written
        """
        if not self.provider.verify_signature(order_id, payment_id, signature):
            logger.warning(
                "Payment signature mismatch",
                extra={"order_id": order_id, "payment_id": payment_id},
            )
            raise PaymentVerificationError()

        ids = list(dict.fromkeys(booking_ids))
        if not ids:
            return []

        stmt = (
            update(Booking)
            .where(Booking.id.in_(ids))
            .values(
                payment_status=PaymentStatus.PAID,
                status=BookingStatus.CONFIRMED,
                payment_id=payment_id,
                provider_order_id=order_id,
            )
            .execution_options(synchronize_session=False)
        )
        if not user.is_admin:
            stmt = stmt.where(Booking.user_id == user.id)

        try:
            result = self.session.execute(stmt)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        confirmed = list(
            self.session.execute(
                select(Booking)
                .where(Booking.id.in_(ids), Booking.payment_id == payment_id)
                .execution_options(populate_existing=True)
            ).unique().scalars().all()
        )
        logger.info(
            "Payment verified",
            extra={
                "order_id": order_id,
                "payment_id": payment_id,
                "requested": len(ids),
                "updated": result.rowcount,
            },
        )

        for booking in confirmed:
            if booking.user and booking.user.email:
                self.notifications.notify_booking_confirmed(
                    booking.user.email,
                    booking.user.name,
                    booking_summary(booking),
                )
        return confirmed


def booking_summary(booking: Booking) -> dict:
    """Fields used by the confirmation email."""
    return {
        "service_name": booking.service.name if booking.service else "Cleaning service",
        "date": booking.date.isoformat(),
        "time": booking.time,
        "address": f"{booking.street}, {booking.city}, {booking.state} {booking.zip_code}",
        "total_price": float(booking.total_price),
        "plan": booking.plan.value,
        "booking_type": booking.booking_type.value,
        "status": booking.status.value,
        "special_instructions": booking.special_instructions,
    }
