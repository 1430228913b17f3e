"""Transactional mail HTTP client.

Messages are posted as JSON (``from``, ``to``, ``subject``, ``html``) to the
configured mail API. Without ``MAIL_API_URL`` the client only logs the
message, which is what development and tests run with.
"""

import asyncio
from typing import Optional

import httpx
import structlog

from labsite.config import get_settings

settings = get_settings()
logger = structlog.get_logger(__name__)

RETRYABLE_STATUS = (429, 500, 502, 503, 504)


class MailDeliveryError(Exception):
    """Raised when a message could not be handed over to the mail API."""


def _layout(title: str, body: str) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: auto;">
      <div style="background-color: #0056b3; color: white; padding: 20px; text-align: center;">
        <h1 style="margin: 0; font-size: 24px;">{title}</h1>
      </div>
      <div style="padding: 20px;">{body}</div>
      <div style="background-color: #f8f8f8; color: #666; padding: 15px; text-align: center; font-size: 12px;">
        This is an automated message, please do not reply.
      </div>
    </div>
    """


def render_password_reset(user_name: str, reset_url: str, valid_minutes: int) -> str:
    return _layout(
        "Password reset",
        f"""
        <p>Hello {user_name},</p>
        <p>We received a request to reset the password of your account.</p>
        <p style="text-align: center; margin: 30px 0;">
          <a href="{reset_url}" style="background-color: #007bff; color: white; padding: 12px 25px; text-decoration: none; border-radius: 5px;">Reset my password</a>
        </p>
        <p>This link is valid for {valid_minutes} minutes.</p>
        <p>If you did not ask for a reset, ignore this e-mail; your password will not change.</p>
        """,
    )


def render_credentials(user_name: str, login_email: str, temporary_password: str, login_url: str) -> str:
    return _layout(
        "Welcome!",
        f"""
        <p>Hello {user_name},</p>
        <p>An administrator created an account for you. Your temporary credentials are:</p>
        <p style="background-color: #f4f4f4; padding: 15px; border-left: 5px solid #0056b3;">
          <strong>Email:</strong> {login_email}<br/>
          <strong>Temporary password:</strong> {temporary_password}
        </p>
        <p>You will be asked to change this password at your first login.</p>
        <p style="text-align: center; margin: 30px 0;">
          <a href="{login_url}" style="background-color: #007bff; color: white; padding: 12px 25px; text-decoration: none; border-radius: 5px;">Sign in</a>
        </p>
        """,
    )


class MailerClient:
    """Client for the transactional mail API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (settings.MAIL_API_URL if base_url is None else base_url).rstrip("/")
        self.api_key = settings.MAIL_API_KEY if api_key is None else api_key
        self.sender = settings.MAIL_SENDER
        self.headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        self.transport = transport
        self.max_retries = 3
        self.retry_delay = 2  # seconds

    async def send(self, to: str, subject: str, html: str) -> dict:
        """Send one message, retrying on connection errors, 429 and 5xx."""
        if not self.base_url:
            logger.info("Mail API not configured, message not sent", to=to, subject=subject)
            return {"status": "skipped"}

        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        url = f"{self.base_url}/messages"

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                async with httpx.AsyncClient(timeout=settings.MAIL_TIMEOUT_SECONDS, transport=self.transport) as client:
                    response = await client.post(url, json=payload, headers=self.headers)
                    response.raise_for_status()
                    logger.info("Mail sent", to=to, subject=subject, attempt=attempt)
                    return response.json() if response.content else {}
            except httpx.HTTPStatusError as e:
                last_error = e
                logger.warning(
                    "Mail API error",
                    attempt=attempt,
                    max_retries=self.max_retries,
                    status_code=e.response.status_code,
                    body=e.response.text[:200],
                )
                if e.response.status_code not in RETRYABLE_STATUS:
                    break
            except httpx.HTTPError as e:
                last_error = e
                logger.warning("Mail API connection error", attempt=attempt, error=str(e))

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay * attempt)

        raise MailDeliveryError(f"Failed to send mail to {to}: {last_error}")

    async def send_password_reset_email(self, to: str, user_name: str, reset_url: str) -> dict:
        return await self.send(
            to,
            "Reset your password",
            render_password_reset(user_name, reset_url, settings.RESET_TOKEN_EXPIRE_MINUTES),
        )

    async def send_credentials_email(self, to: str, user_name: str, temporary_password: str) -> dict:
        login_url = f"{settings.FRONTEND_URL.rstrip('/')}/connexion"
        return await self.send(
            to,
            "Your temporary sign-in credentials",
            render_credentials(user_name, to, temporary_password, login_url),
        )
