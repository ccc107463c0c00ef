"""Authentication routes.

Provides OTP-gated account endpoints:
- POST /auth/send-otp: Email a registration code
- POST /auth/verify-otp-and-register: Verify code and create the account
- POST /auth/login: Email + password login
- POST /auth/forgot-password: Email a password reset code
- POST /auth/reset-password: Verify reset code and store a new password
- GET /auth/me: Current user profile
"""
import re
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool
from pydantic import AfterValidator, BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from zynkly.api.dependencies import get_current_user, get_db, get_notification_service
from zynkly.api.schemas import MessageResponse, UserResponse
from zynkly.models.users import User
from zynkly.services.auth_service import AuthService
from zynkly.services.notification_service import NotificationService


router = APIRouter(prefix="/auth", tags=["Authentication"])

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _check_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email")
    return value


def _check_name(value: str) -> str:
    if not value.strip():
        raise ValueError("Name is required")
    return value.strip()


def _check_password(value: str) -> str:
    if len(value) < 6:
        raise ValueError("Password must be at least 6 characters")
    return value


def _check_otp(value: str) -> str:
    value = value.strip()
    if len(value) != 6 or not value.isdigit():
        raise ValueError("OTP must be 6 digits")
    return value


EmailField = Annotated[str, AfterValidator(_check_email)]
NameField = Annotated[str, AfterValidator(_check_name)]
# bcrypt only looks at the first 72 bytes
NewPassword = Annotated[str, Field(max_length=72), AfterValidator(_check_password)]
OTPCode = Annotated[str, AfterValidator(_check_otp)]


# Request/Response Models
class SendOTPRequest(BaseModel):
    """Registration code request."""
    email: EmailField = Field(..., description="Email address", examples=["user@example.com"])
    name: NameField = Field(..., description="Display name used in the email")


class OTPSentResponse(BaseModel):
    message: str
    email: str


class RegisterRequest(BaseModel):
    """Verify registration code and create the account."""
    name: NameField
    email: EmailField
    password: NewPassword
    phone: Optional[str] = Field(None, max_length=20)
    otp: OTPCode = Field(..., description="6-digit code from the email")


class LoginRequest(BaseModel):
    email: EmailField
    password: str = Field(..., max_length=72)

    @field_validator("password")
    @classmethod
    def password_required(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class ForgotPasswordRequest(BaseModel):
    email: EmailField


class ResetPasswordRequest(BaseModel):
    email: EmailField
    otp: OTPCode
    password: NewPassword


class AuthResponse(BaseModel):
    """Token plus profile."""
    token: str = Field(..., description="JWT access token")
    user: UserResponse
    message: Optional[str] = None


# Dependency to get AuthService
def get_auth_service(
    db: Session = Depends(get_db),
    notifications: NotificationService = Depends(get_notification_service),
) -> AuthService:
    """Get AuthService instance with database session."""
    return AuthService(db, notifications)


# Routes
@router.post(
    "/send-otp",
    response_model=OTPSentResponse,
    status_code=status.HTTP_200_OK,
    summary="Send registration OTP",
)
async def send_otp(
    request: SendOTPRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Send a 6-digit code to an email that is not registered yet.

    Raises:
        400: Invalid payload or account already exists
        500: The code could not be delivered
    """
    email = await auth_service.send_registration_otp(request.email, request.name)
    return OTPSentResponse(
        message="OTP sent to your email. Please check your inbox.",
        email=email,
    )


@router.post(
    "/verify-otp-and-register",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Verify OTP and register",
)
async def verify_otp_and_register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    # bcrypt and the session are blocking
    user, token = await run_in_threadpool(
        auth_service.register_with_otp,
        name=request.name,
        email=request.email,
        password=request.password,
        otp=request.otp,
        phone=request.phone,
    )
    return AuthResponse(
        token=token,
        user=UserResponse.from_model(user),
        message="Email verified and account created successfully!",
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    summary="Login with email and password",
)
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    user, token = await run_in_threadpool(auth_service.login, request.email, request.password)
    return AuthResponse(token=token, user=UserResponse.from_model(user))


@router.post(
    "/forgot-password",
    response_model=OTPSentResponse,
    summary="Send password reset OTP",
)
async def forgot_password(
    request: ForgotPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Same answer whether or not the email is registered."""
    email = await auth_service.request_password_reset(request.email)
    return OTPSentResponse(
        message="If an account exists for this email, a password reset code has been sent.",
        email=email,
    )


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Reset password with OTP",
)
async def reset_password(
    request: ResetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    await run_in_threadpool(auth_service.reset_password, request.email, request.otp, request.password)
    return MessageResponse(message="Password reset successfully. Please log in with your new password.")


@router.get("/me", response_model=UserResponse, response_model_exclude_none=True)
def me(user: User = Depends(get_current_user)):
    """Profile of the token holder."""
    return UserResponse.from_model(user)
