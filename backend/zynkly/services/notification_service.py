"""
Notification service for transactional email.

Two delivery modes:
- ``send_otp_email`` is awaited; a failure is raised to the caller because an
  undeliverable code is useless.
- every other notification goes through ``dispatch``: the caller continues
  immediately, there is no ordering or delivery guarantee, and failures only
  reach the log.
"""
import asyncio
import enum
import smtplib
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Awaitable, Callable, Optional

from zynkly.lib.logging import get_logger
from zynkly.lib.settings import Settings, settings as default_settings
from zynkly.services import email_templates
from zynkly.services.email_templates import EmailContent
from zynkly.services.errors import DeliveryError


logger = get_logger(__name__)


# SMTP presets selectable with EMAIL_PROVIDER
PROVIDER_DEFAULTS = {
    "brevo": {"label": "Brevo", "host": "smtp-relay.brevo.com", "port": 587, "secure": False},
    "gmail": {"label": "Gmail", "host": "smtp.gmail.com", "port": 587, "secure": False},
}


class TransportState(str, enum.Enum):
    """Readiness of a mail transport."""
    UNINITIALIZED = "uninitialized"
    VERIFYING = "verifying"
    READY = "ready"
    FAILED = "failed"


class MailTransport(ABC):
    """Abstract base class for email delivery."""

    @abstractmethod
    async def send(self, to: str, content: EmailContent) -> None:
        """
        Deliver one email.

        Raises:
            DeliveryError: If the message could not be handed to the server
        """
        pass


class ConsoleMailTransport(MailTransport):
    """
    Console transport for development/testing.
    Prints emails instead of sending them.
    """

    async def send(self, to: str, content: EmailContent) -> None:
        print("\n" + "=" * 60)
        print(f"📧 Email to {to}: {content.subject}")
        print(content.text)
        print("=" * 60 + "\n")
        logger.info("Email logged to console", extra={"to": to})


class SMTPMailTransport(MailTransport):
    """
    SMTP transport with a lazily verified connection.

    The first send checks that credentials exist and that the server accepts
    them (uninitialized → verifying → ready). A failed check leaves the
    transport in ``failed`` and the next send tries again.
    """

    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        preset = PROVIDER_DEFAULTS.get(config.email_provider.lower(), PROVIDER_DEFAULTS["brevo"])

        self.label = preset["label"]
        self.host = config.smtp_host or preset["host"]
        self.port = config.smtp_port or preset["port"]
        if config.smtp_secure is not None:
            self.secure = config.smtp_secure
        else:
            self.secure = self.port == 465 or preset["secure"]
        self.username = config.smtp_user
        self.password = config.smtp_pass
        self.from_email = config.smtp_from_email or config.smtp_user
        self.from_name = config.smtp_from_name
        self.timeout = config.smtp_timeout_seconds

        self.state = TransportState.UNINITIALIZED
        self.last_error: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def is_configured(self) -> bool:
        return bool(self.username and self.password)

    def _connect(self) -> smtplib.SMTP:
        if self.secure:
            server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            # STARTTLS is mandatory on submission ports
            server.starttls()
        server.login(self.username, self.password)
        return server

    def _ensure_ready(self) -> None:
        with self._lock:
            if self.state == TransportState.READY:
                return

            if not self.is_configured:
                self.state = TransportState.FAILED
                self.last_error = "SMTP_USER and SMTP_PASS are not set"
                raise DeliveryError("Email service not configured")

            self.state = TransportState.VERIFYING
            logger.info(
                f"Verifying email transport ({self.label}) {self.host}:{self.port}",
                extra={"secure": self.secure},
            )
            try:
                server = self._connect()
                server.quit()
            except (smtplib.SMTPException, OSError) as e:
                self.state = TransportState.FAILED
                self.last_error = str(e)
                logger.error(f"Email transport verification failed: {e}")
                raise DeliveryError("Email service unavailable") from e

            self.state = TransportState.READY
            self.last_error = None
            logger.info("Email transport ready")

    def _build_message(self, to: str, content: EmailContent) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = content.subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to
        msg.attach(MIMEText(content.text, "plain", "utf-8"))
        msg.attach(MIMEText(content.html, "html", "utf-8"))
        return msg

    def _send_sync(self, to: str, content: EmailContent) -> None:
        self._ensure_ready()
        msg = self._build_message(to, content)
        try:
            server = self._connect()
            try:
                server.send_message(msg)
            finally:
                server.quit()
        except (smtplib.SMTPException, OSError) as e:
            # Force re-verification on the next send
            self.state = TransportState.FAILED
            self.last_error = str(e)
            raise DeliveryError(f"Failed to send email: {e}") from e

    async def send(self, to: str, content: EmailContent) -> None:
        await asyncio.to_thread(self._send_sync, to, content)
        logger.info("Email sent", extra={"to": to, "subject": content.subject})


def build_mail_transport(config: Optional[Settings] = None) -> MailTransport:
    """Pick the transport selected by EMAIL_PROVIDER."""
    config = config or default_settings
    if config.email_provider.lower() == "console":
        logger.info("Using console mail transport (dev mode)")
        return ConsoleMailTransport()
    return SMTPMailTransport(config)


class NotificationService:
    """
    Sends transactional emails through a ``MailTransport``.

    One instance lives for the whole process (created by the app factory);
    background sends are tracked so shutdown can wait for them.
    """

    def __init__(self, transport: MailTransport, otp_ttl_minutes: int = 10):
        self.transport = transport
        self.otp_ttl_minutes = otp_ttl_minutes
        self._pending: set = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # Critical path

    async def send_otp_email(
        self,
        email: str,
        code: str,
        purpose: str,
        name: Optional[str] = None,
    ) -> None:
        """
        Deliver a verification code.

        Raises:
            DeliveryError: If the transport could not deliver the email
        """
        content = email_templates.otp_email(code, purpose, name, self.otp_ttl_minutes)
        try:
            await self.transport.send(email, content)
        except DeliveryError:
            raise
        except Exception as e:
            raise DeliveryError(f"Failed to send verification email: {e}") from e
        logger.info("OTP email sent", extra={"to": email, "purpose": purpose})

    # Fire-and-forget

    def dispatch(self, to: str, content_factory: Callable[[], EmailContent], kind: str) -> None:
        """
        Send an email in the background.

        The caller does not wait; errors are logged and dropped.
        """
        async def _run() -> None:
            try:
                await self.transport.send(to, content_factory())
            except Exception as e:
                logger.warning(
                    f"Failed to send {kind} email: {e}",
                    extra={"to": to, "kind": kind},
                )

        self._spawn(_run)

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Run background sends requested from worker threads on ``loop``."""
        self._loop = loop

    def _spawn(self, coro_fn: Callable[[], Awaitable[None]]) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            if self._loop is not None and self._loop.is_running():
                # Worker thread (threadpool route): hand over to the app loop
                self._loop.call_soon_threadsafe(self._track, coro_fn)
            else:
                threading.Thread(target=asyncio.run, args=(coro_fn(),), daemon=True).start()
            return

        self._track(coro_fn)

    def _track(self, coro_fn: Callable[[], Awaitable[None]]) -> None:
        task = asyncio.get_running_loop().create_task(coro_fn())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for background sends started on the current loop."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def notify_welcome(self, email: str, name: str) -> None:
        self.dispatch(email, lambda: email_templates.welcome_email(name), "welcome")

    def notify_login(self, email: str, name: str, when: Optional[datetime] = None) -> None:
        when = when or datetime.now(timezone.utc)
        login_time = when.strftime("%A, %d %B %Y %H:%M %Z")
        self.dispatch(email, lambda: email_templates.login_email(name, login_time), "login")

    def notify_password_changed(self, email: str, name: str) -> None:
        self.dispatch(email, lambda: email_templates.password_changed_email(name), "password-changed")

    def notify_booking_confirmed(self, email: str, name: str, booking: dict) -> None:
        self.dispatch(
            email,
            lambda: email_templates.booking_confirmation_email(name, booking),
            "booking-confirmation",
        )
