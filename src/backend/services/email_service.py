"""
Email Service using Azure Communication Services.

Handles:
- One-time verification codes for voters
"""

import asyncio
from typing import Any, Optional

import structlog
from azure.communication.email import EmailClient

from core.config import settings
from core.encryption import mask_email
from models.voter import EligibleVoter

logger = structlog.get_logger(__name__)


class EmailService:
    """
    Email delivery channel using Azure Communication Services.

    The SDK is synchronous; sends run in a worker thread so they never block
    the event loop.
    """

    name = "email"
    label = "Email"

    def __init__(
        self,
        connection_string: Optional[str] = None,
        sender_address: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        self._connection_string = connection_string or settings.AZURE_COMMUNICATION_CONNECTION_STRING
        self._sender_address = sender_address or settings.AZURE_EMAIL_SENDER_ADDRESS
        self._client = client
        self._initialized = client is not None

    def initialize(self) -> None:
        """Initialize the Azure Email client."""
        if self._initialized:
            return

        if not self._connection_string or not self._sender_address:
            logger.warning(
                "email_service_not_configured",
                has_connection_string=bool(self._connection_string),
                has_sender_address=bool(self._sender_address),
            )
            self._initialized = True
            return

        try:
            self._client = EmailClient.from_connection_string(self._connection_string)
            logger.info("email_service_initialized")
        except Exception as e:
            logger.error("email_service_init_failed", error=str(e))
        self._initialized = True

    @property
    def is_available(self) -> bool:
        """Check if email service is available."""
        return self._client is not None and self._sender_address is not None

    def address_for(self, voter: EligibleVoter) -> Optional[str]:
        return voter.email or None

    async def send(self, address: str, code: str, context: dict[str, Any]) -> bool:
        """
        Send a one-time code by email.

        Args:
            address: Recipient email address
            code: The plaintext one-time code
            context: reg_no and expires_minutes for the message body

        Returns:
            True if sent successfully
        """
        self.initialize()

        if not self.is_available:
            logger.warning("email_service_unavailable", action="otp", to=mask_email(address))
            return False

        reg_no = context.get("reg_no", "")
        minutes = context.get("expires_minutes", settings.OTP_EXPIRY_SECONDS // 60)

        subject = f"{settings.APP_NAME} - Verification Code"
        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; margin: 0; padding: 20px; background-color: #f5f5f5;">
            <div style="max-width: 600px; margin: 0 auto; background: white; border-radius: 8px; padding: 40px;">
                <h1 style="color: #1a1a1a; margin-bottom: 24px;">Your voting verification code</h1>
                <p style="color: #4a4a4a; line-height: 1.6;">Registration number: <strong>{reg_no}</strong></p>
                <p style="font-size: 32px; font-weight: bold; color: #1e40af; letter-spacing: 4px; text-align: center;">{code}</p>
                <p style="color: #6b7280; font-size: 14px; line-height: 1.6;">
                    This code expires in {minutes} minutes. Do not share it with anyone.
                </p>
            </div>
        </body>
        </html>
        """

        plain_text = (
            f"Your {settings.APP_NAME} verification code is: {code}\n"
            f"Reg No: {reg_no}\n"
            f"This code expires in {minutes} minutes. Do not share it with anyone."
        )

        return await self._send_email(
            to_email=address,
            subject=subject,
            html_content=html_content,
            plain_text=plain_text,
        )

    async def _send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        plain_text: str,
    ) -> bool:
        """Internal method to send an email."""
        if not self._client or not self._sender_address:
            return False

        message = {
            "senderAddress": self._sender_address,
            "recipients": {
                "to": [{"address": to_email}],
            },
            "content": {
                "subject": subject,
                "plainText": plain_text,
                "html": html_content,
            },
        }

        try:
            result = await asyncio.to_thread(self._begin_send_and_wait, message)
        except Exception as e:
            logger.error("email_send_error", error=str(e), to=mask_email(to_email))
            return False

        if result["status"] == "Succeeded":
            logger.info("email_sent", to=mask_email(to_email), message_id=result.get("id"))
            return True

        logger.error("email_send_failed", status=result["status"], error=result.get("error"))
        return False

    def _begin_send_and_wait(self, message: dict[str, Any]) -> dict[str, Any]:
        poller = self._client.begin_send(message)
        return poller.result()
