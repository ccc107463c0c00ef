"""
Subjects and bodies for transactional emails.

Each builder returns an ``EmailContent`` with a plain-text and an HTML part.
"""
from dataclasses import dataclass
from html import escape
from typing import Optional

from zynkly.lib.settings import settings


@dataclass(frozen=True)
class EmailContent:
    subject: str
    text: str
    html: str


def _layout(title: str, body_html: str) -> str:
    return f"""
<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
      <h2 style="color: #0f766e;">{title}</h2>
      {body_html}
      <hr style="border: none; border-top: 1px solid #e5e7eb; margin: 20px 0;">
      <p style="color: #6b7280; font-size: 12px;">Best regards,<br>{settings.smtp_from_name} Team</p>
    </div>
  </body>
</html>
"""


def otp_email(code: str, purpose: str, name: Optional[str] = None, ttl_minutes: int = 10) -> EmailContent:
    """Verification code for registration or password reset."""
    greeting = f"Hello {name}," if name else "Hello,"
    if purpose == "password-reset":
        subject = f"Password Reset Code - {settings.smtp_from_name}"
        intro = "We received a request to reset your password. Use this code to continue:"
        ignore = "If you didn't request a password reset, you can safely ignore this email."
    else:
        subject = f"Email Verification OTP - {settings.smtp_from_name}"
        intro = "Use this code to verify your email address and finish creating your account:"
        ignore = "If you didn't request this code, please ignore this email."

    text = (
        f"{greeting}\n\n{intro}\n\n    {code}\n\n"
        f"This code will expire in {ttl_minutes} minutes.\n\n{ignore}\n"
    )
    html = _layout(
        "Your verification code",
        f"""
      <p>{escape(greeting)}</p>
      <p>{intro}</p>
      <div style="background-color: #f3f4f6; padding: 20px; border-radius: 8px; text-align: center; margin: 20px 0;">
        <h1 style="color: #0f766e; font-size: 36px; letter-spacing: 8px; margin: 0;">{escape(code)}</h1>
      </div>
      <p>This code will expire in <strong>{ttl_minutes} minutes</strong>.</p>
      <p style="color: #6b7280; font-size: 14px;">{ignore}</p>
""",
    )
    return EmailContent(subject=subject, text=text, html=html)


def welcome_email(name: str) -> EmailContent:
    subject = f"Welcome to {settings.smtp_from_name}!"
    text = (
        f"Hi {name},\n\nYour account is ready. Browse our cleaning services and "
        f"book your first visit at {settings.frontend_url}/services\n"
    )
    html = _layout(
        f"Welcome, {escape(name)}!",
        f"""
      <p>Your account is ready.</p>
      <p><a href="{settings.frontend_url}/services">Browse services</a> and book your first visit.</p>
""",
    )
    return EmailContent(subject=subject, text=text, html=html)


def login_email(name: str, login_time: str) -> EmailContent:
    subject = f"Login Notification - {settings.smtp_from_name}"
    text = (
        f"Hi {name},\n\nWe noticed a new login to your account on {login_time}.\n"
        "If this wasn't you, reset your password right away.\n"
    )
    html = _layout(
        "New login to your account",
        f"""
      <p>Hi {escape(name)},</p>
      <p>We noticed a new login to your account on <strong>{escape(login_time)}</strong>.</p>
      <p>If this wasn't you, <a href="{settings.frontend_url}/forgot-password">reset your password</a> right away.</p>
""",
    )
    return EmailContent(subject=subject, text=text, html=html)


def password_changed_email(name: str) -> EmailContent:
    subject = f"Your password was changed - {settings.smtp_from_name}"
    text = f"Hi {name},\n\nYour password has been changed. If this wasn't you, contact support.\n"
    html = _layout(
        "Password changed",
        f"""
      <p>Hi {escape(name)},</p>
      <p>Your password has been changed. If this wasn't you, contact support immediately.</p>
""",
    )
    return EmailContent(subject=subject, text=text, html=html)


def booking_confirmation_email(name: str, booking: dict) -> EmailContent:
    """
    Confirmation for a paid booking.

    ``booking`` keys: service_name, date, time, address, total_price, plan,
    booking_type, status, special_instructions.
    """
    service_name = booking["service_name"]
    subject = f"Booking Confirmation - {service_name}"
    instructions = booking.get("special_instructions") or "None"
    rows = [
        ("Service", service_name),
        ("Date", booking["date"]),
        ("Time", booking["time"]),
        ("Address", booking["address"]),
        ("Plan", booking["plan"]),
        ("Booking type", booking["booking_type"]),
        ("Total paid", f"₹{booking['total_price']:.2f}"),
        ("Status", booking["status"]),
        ("Special instructions", instructions),
    ]
    text = f"Hi {name},\n\nYour booking is confirmed.\n\n" + "\n".join(
        f"{label}: {value}" for label, value in rows
    )
    table = "".join(
        f'<tr><td style="padding: 4px 12px 4px 0; color: #6b7280;">{label}</td><td>{escape(str(value))}</td></tr>'
        for label, value in rows
    )
    html = _layout(
        "Your booking is confirmed",
        f"""
      <p>Hi {escape(name)},</p>
      <p>Thanks for your payment. Here are your booking details:</p>
      <table>{table}</table>
      <p><a href="{settings.frontend_url}/dashboard">View your bookings</a></p>
""",
    )
    return EmailContent(subject=subject, text=text, html=html)
