"""Authentication service: OTP-gated registration, login and password reset.

Flows:
1. Registration: send OTP (rejects known emails) → verify OTP and create account
2. Login: email + password → JWT
3. Password reset: send OTP (same answer for unknown emails) → verify OTP and
   store the new password
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from zynkly.lib.jwt import create_access_token
from zynkly.lib.logging import get_logger
from zynkly.lib.security import hash_password, verify_password
from zynkly.models.otps import OTPPurpose
from zynkly.models.users import User, UserRole
from zynkly.services.errors import InvalidRequestError
from zynkly.services.notification_service import NotificationService
from zynkly.services.otp_service import OTPService, normalize_email


logger = get_logger(__name__)


class AuthService:
    """Authentication service.

    Wraps user lookups, the OTP store and token issuance for one request.
    """

    def __init__(
        self,
        session: Session,
        notifications: NotificationService,
        otp_service: Optional[OTPService] = None,
    ):
        """Initialize auth service with database session and notification sink.

        Args:
            session: SQLAlchemy session for database operations
            notifications: Process-wide notification service
            otp_service: OTP store; built from ``session`` when omitted
        """
        self.session = session
        self.notifications = notifications
        self.otp_service = otp_service or OTPService(session, notifications)

    def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == normalize_email(email))
        return self.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def issue_token(user: User) -> str:
        return create_access_token(user_id=str(user.id), role=user.role.value)

    async def send_registration_otp(self, email: str, name: str) -> str:
        """Send a registration code to an email that has no account yet.

        Returns:
            The normalized email the code was sent to

        Raises:
            InvalidRequestError: If an account already exists
            DeliveryError: If the email could not be sent
        """
        email = normalize_email(email)
        if self.get_user_by_email(email):
            raise InvalidRequestError("User with this email already exists")

        await self.otp_service.issue(email, OTPPurpose.REGISTRATION, name=name)
        return email

    def register_with_otp(
        self,
        name: str,
        email: str,
        password: str,
        otp: str,
        phone: Optional[str] = None,
    ) -> tuple[User, str]:
        """Verify a registration code and create the account.

        Returns:
            Tuple of (new user, access token)

        Raises:
            OTPError: If the code is rejected
            InvalidRequestError: If the email was registered in the meantime
        """
        email = normalize_email(email)
        record = self.otp_service.verify(email, OTPPurpose.REGISTRATION, otp)

        if self.get_user_by_email(email):
            self.otp_service.consume(record)
            raise InvalidRequestError("User already exists")

        user = User(
            name=name.strip(),
            email=email,
            password_hash=hash_password(password),
            phone=phone,
            role=UserRole.CUSTOMER,
        )
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            self.session.rollback()
            self.otp_service.consume(record)
            raise InvalidRequestError("Email already exists")
        self.session.refresh(user)

        logger.info("User registered", extra={"user_id": str(user.id)})

        self.notifications.notify_welcome(user.email, user.name)
        return user, self.issue_token(user)

    def login(self, email: str, password: str) -> tuple[User, str]:
        """Check credentials and issue a token.

        Raises:
            InvalidRequestError: Same message for unknown email and wrong password
        """
        user = self.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise InvalidRequestError("Invalid email or password")

        self.notifications.notify_login(user.email, user.name)
        return user, self.issue_token(user)

    async def request_password_reset(self, email: str) -> str:
        """Send a reset code if the account exists.

        Unknown emails get no code and no error, so callers cannot use it to discover
        registered addresses.
        """
        email = normalize_email(email)
        user = self.get_user_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return email

        await self.otp_service.issue(email, OTPPurpose.PASSWORD_RESET, name=user.name)
        return email

    def reset_password(self, email: str, otp: str, new_password: str) -> User:
        """Verify a reset code and store the new password.

        Raises:
            OTPError: If the code is rejected
            InvalidRequestError: If the account is gone or the password is unchanged
        """
        email = normalize_email(email)
        record = self.otp_service.verify(email, OTPPurpose.PASSWORD_RESET, otp)

        user = self.get_user_by_email(email)
        if user is None:
            self.otp_service.consume(record)
            raise InvalidRequestError("User not found")

        if verify_password(new_password, user.password_hash):
            # The code is spent either way; the user must request a new one
            self.otp_service.consume(record)
            raise InvalidRequestError("New password must be different from your current password")

        user.password_hash = hash_password(new_password)
        self.session.commit()
        logger.info("Password reset", extra={"user_id": str(user.id)})

        self.notifications.notify_password_changed(user.email, user.name)
        return user
