"""Domain errors raised by the service layer.

Routes never build HTTP responses for these by hand: the API layer registers
``domain_exception_handler`` which maps each class to a status code.
"""
from typing import Optional


class DomainError(Exception):
    """Base class for business-rule failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidRequestError(DomainError):
    """The request breaks a business rule (maps to 400)."""


class NotFoundError(DomainError):
    """A referenced record does not exist (maps to 404)."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        super().__init__(
            f"{resource} not found",
            details={"resource": resource, "resource_id": resource_id},
        )
        self.resource = resource


class AccessDeniedError(DomainError):
    """Caller is authenticated but not allowed to do this (maps to 403)."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class OTPError(InvalidRequestError):
    """An OTP could not be accepted."""

    def __init__(self, message: str, remaining_attempts: Optional[int] = None):
        details = {}
        if remaining_attempts is not None:
            details["remaining_attempts"] = remaining_attempts
        super().__init__(message, details=details)
        self.remaining_attempts = remaining_attempts


class DeliveryError(DomainError):
    """A notification that the caller depends on could not be delivered (maps to 500)."""


class PaymentConfigurationError(DomainError):
    """Payment provider credentials are missing or unusable (maps to 503)."""

    code = "PAYMENT_PROVIDER_NOT_CONFIGURED"


class PaymentProviderError(DomainError):
    """The payment provider rejected or failed a request (maps to 502)."""


class PaymentVerificationError(InvalidRequestError):
    """The payment callback signature did not match."""

    def __init__(self, message: str = "Payment verification failed"):
        super().__init__(message)
