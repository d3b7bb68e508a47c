from typing import Protocol

import httpx

from app.core.errors import DependencyFailureError, DependencyTimeoutError
from app.core.logger import get_logger

logger = get_logger(__name__)

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"


class EmailSender(Protocol):
    async def send(self, to_email: str, subject: str, html: str) -> None:
        """Deliver one message. Raises DependencyFailureError / DependencyTimeoutError."""
        ...


class BrevoEmailSender:
    """Transactional email through the Brevo (Sendinblue) HTTP API."""

    def __init__(
        self,
        api_key: str,
        from_email: str,
        from_name: str,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._from_email = from_email
        self._from_name = from_name
        self._timeout = timeout
        self._transport = transport

    async def send(self, to_email: str, subject: str, html: str) -> None:
        if not self._api_key:
            logger.error("SENDINBLUE_API_KEY not configured, cannot send %r", subject)
            raise DependencyFailureError("Email service is not configured")

        payload = {
            "sender": {"name": self._from_name, "email": self._from_email},
            "to": [{"email": to_email}],
            "subject": subject,
            "htmlContent": html,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                r = await client.post(
                    BREVO_SEND_URL,
                    headers={"api-key": self._api_key, "Content-Type": "application/json"},
                    json=payload,
                )
        except httpx.TimeoutException as exc:
            logger.warning("Brevo timed out sending %r", subject)
            raise DependencyTimeoutError() from exc
        except httpx.HTTPError as exc:
            logger.error("Brevo request failed: %s", exc.__class__.__name__)
            raise DependencyFailureError() from exc

        if r.status_code >= 400:
            logger.error("Brevo error %s: %s", r.status_code, r.text[:200])
            raise DependencyFailureError()


class ConsoleEmailSender:
    """Development sender: logs instead of delivering. Never use in production."""

    async def send(self, to_email: str, subject: str, html: str) -> None:
        logger.info("[dev email] to=%s subject=%r\n%s", to_email, subject, html)


# ── Templates ─────────────────────────────────────────────────────────

def otp_email(otp: str, expiry_minutes: int) -> tuple[str, str]:
    subject = "Email Verification - OTP"
    html = f"""
    <div style="font-family:Arial,sans-serif;max-width:560px;margin:auto;padding:24px">
      <h2 style="margin:0 0 12px 0;">Verify your email</h2>
      <p style="margin:0 0 16px 0;color:#444;line-height:1.5;">
        Your OTP for email verification is:
      </p>
      <p style="font-size:28px;font-weight:700;letter-spacing:6px;margin:0 0 16px 0;">{otp}</p>
      <p style="margin:0;color:#444;">Valid for {expiry_minutes} minutes.</p>
      <p style="margin:18px 0 0 0;color:#666;font-size:12px;">
        If you did not request this, you can ignore this email.
      </p>
    </div>
    """
    return subject, html


def password_updated_email(email: str, name: str) -> tuple[str, str]:
    subject = "Password Updated Successfully"
    html = f"""
    <div style="font-family:Arial,sans-serif;max-width:560px;margin:auto;padding:24px">
      <h2 style="margin:0 0 12px 0;">Hey {name},</h2>
      <p style="margin:0 0 16px 0;color:#444;line-height:1.5;">
        The password for <b>{email}</b> was changed successfully.
      </p>
      <p style="margin:18px 0 0 0;color:#666;font-size:12px;">
        If you did not make this change, reset your password immediately and contact support.
      </p>
    </div>
    """
    return subject, html
