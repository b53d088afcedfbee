"""Email service using SendGrid."""

from dataclasses import dataclass
from html import escape
from typing import Optional

import httpx

from insights.logging_config import get_logger
from insights.settings import settings

logger = get_logger(__name__)


@dataclass
class EmailResult:
    """Outcome of one send attempt."""
    ok: bool
    error: str | None = None


class EmailService:
    """Email service using SendGrid API.

    Handles the dashboard's outbound emails:
    - Encouragement emails to users who signed up but never applied
    """

    SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"

    def __init__(self):
        """Initialize email service."""
        self.api_key = settings.sendgrid_api_key
        self.from_email = settings.sendgrid_from_email
        self.from_name = settings.sendgrid_from_name
        self.enabled = bool(self.api_key)

        if not self.enabled:
            logger.warning("email_service_disabled", reason="SENDGRID_API_KEY not set")

    async def _send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> EmailResult:
        """Send an email via SendGrid API.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML body
            text_content: Plain text body (optional)

        Returns:
            EmailResult with the failure reason when not sent
        """
        if not self.enabled:
            logger.warning("email_not_sent", reason="service_disabled", to=to_email)
            return EmailResult(ok=False, error="Email service is not configured")

        payload = {
            "personalizations": [
                {
                    "to": [{"email": to_email}],
                    "subject": subject,
                }
            ],
            "from": {
                "email": self.from_email,
                "name": self.from_name,
            },
            "content": [
                {"type": "text/html", "value": html_content},
            ],
        }

        if text_content:
            payload["content"].insert(0, {"type": "text/plain", "value": text_content})

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.SENDGRID_API_URL,
                    json=payload,
                    headers=headers,
                    timeout=30.0,
                )

                if response.status_code in (200, 201, 202):
                    logger.info("email_sent", to=to_email, subject=subject)
                    return EmailResult(ok=True)

                logger.error(
                    "email_send_failed",
                    to=to_email,
                    status=response.status_code,
                    body=response.text[:200],
                )
                return EmailResult(
                    ok=False,
                    error=f"SendGrid responded with status {response.status_code}",
                )

        except httpx.RequestError as e:
            logger.error("email_send_error", to=to_email, error=str(e))
            return EmailResult(ok=False, error=str(e))

    async def send_encouragement_email(
        self,
        to_email: str,
        user_name: Optional[str],
        opportunities_count: int,
    ) -> EmailResult:
        """Nudge a signed-up user towards their first application.

        Args:
            to_email: User's email address
            user_name: User's name (optional)
            opportunities_count: Number of currently open opportunities

        Returns:
            EmailResult
        """
        base_url = settings.frontend_url or settings.allowed_origins.split(",")[0]
        browse_url = f"{base_url.rstrip('/')}/browse"
        greeting_name = f" {user_name}" if user_name else ""
        plural, verb = ("y", "is") if opportunities_count == 1 else ("ies", "are")

        subject = f"{opportunities_count} opportunit{plural} {verb} waiting for you"

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <style>
                body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; }}
                .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
                .button {{ display: inline-block; background-color: #2563eb; color: white; padding: 12px 30px; text-decoration: none; border-radius: 6px; margin: 20px 0; }}
                .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #eee; font-size: 12px; color: #666; }}
            </style>
        </head>
        <body>
            <div class="container">
                <p>Hi{escape(greeting_name)},</p>

                <p>You created your account but haven't applied yet. There are currently
                <strong>{opportunities_count}</strong> open opportunit{plural} you can apply to today.</p>

                <p style="text-align: center;">
                    <a href="{browse_url}" class="button">Browse opportunities</a>
                </p>

                <div class="footer">
                    <p>You are receiving this email because you signed up on our platform.</p>
                </div>
            </div>
        </body>
        </html>
        """

        text_content = f"""
Hi{greeting_name},

You created your account but haven't applied yet.
There are currently {opportunities_count} open opportunit{plural} you can apply to today:
{browse_url}
        """

        return await self._send_email(to_email, subject, html_content, text_content)


# Singleton instance
email_service = EmailService()
