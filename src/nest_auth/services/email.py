"""Transactional email sender (Resend HTTP API, send-only)."""

import html
import logging

import httpx

from nest_auth.config import settings

logger = logging.getLogger(__name__)

RESEND_EMAILS_URL = "https://api.resend.com/emails"


class EmailService:
    """Send-only email collaborator.

    Delivery is disabled (logged, not sent) when no Resend API key is
    configured, which is the normal state in development and tests.
    """

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.from_email = from_email or settings.no_reply_email
        self.timeout = timeout
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def send_email(self, to: str, subject: str, html_body: str) -> bool:
        """
        Send one email.

        Returns:
            True if the provider accepted the message, False otherwise
        """
        if not self.enabled:
            logger.info("Email delivery disabled; skipping '%s'", subject)
            return False

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    RESEND_EMAILS_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": self.from_email,
                        "to": [to],
                        "subject": subject,
                        "html": html_body,
                    },
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "Email delivery failed for '%s'",
                subject,
                extra={"error_type": type(exc).__name__},
            )
            return False

        return True

    async def send_verification_email(self, to: str, link: str) -> bool:
        body = (
            "<p>Welcome! Please confirm your email address.</p>"
            f'<p><a href="{html.escape(link)}">Verify email</a></p>'
        )
        return await self.send_email(to, "Verify your email", body)

    async def send_forgot_password_email(self, to: str, link: str) -> bool:
        body = (
            "<p>We received a request to reset your password.</p>"
            f'<p><a href="{html.escape(link)}">Reset password</a></p>'
            "<p>If you did not request this, you can ignore this email.</p>"
        )
        return await self.send_email(to, "Reset your password", body)
