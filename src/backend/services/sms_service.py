"""
SMS Service using Azure Communication Services.

Handles:
- One-time verification codes for voters
- Normalizing local phone numbers to E.164
"""

import asyncio
from typing import Any, Optional

import structlog
from azure.communication.sms import SmsClient

from core.config import settings
from core.encryption import mask_phone
from models.voter import EligibleVoter

logger = structlog.get_logger(__name__)


def normalize_phone_number(phone: str, country_code: Optional[str] = None) -> str:
    """
    Convert a stored phone number to E.164.

    "0701234567" -> "+256701234567", "256701234567" -> "+256701234567",
    "701234567" -> "+256701234567"; numbers already starting with "+" are kept.
    """
    prefix = country_code or settings.SMS_DEFAULT_COUNTRY_CODE
    digits = prefix.lstrip("+")
    number = phone.strip().replace(" ", "")

    if number.startswith("+"):
        return number
    if number.startswith("0"):
        return f"+{digits}{number[1:]}"
    if number.startswith(digits):
        return f"+{number}"
    return f"+{digits}{number}"


class SMSService:
    """SMS delivery channel using Azure Communication Services."""

    name = "sms"
    label = "SMS"

    def __init__(
        self,
        connection_string: Optional[str] = None,
        sender_number: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        self._connection_string = connection_string or settings.AZURE_COMMUNICATION_CONNECTION_STRING
        self._sender_number = sender_number or settings.AZURE_COMMUNICATION_SENDER_NUMBER
        self._client = client
        self._initialized = client is not None

    def initialize(self) -> None:
        """Initialize the Azure Communication Services client."""
        if self._initialized:
            return

        if not self._connection_string:
            logger.warning("sms_service_not_configured")
            self._initialized = True
            return

        try:
            self._client = SmsClient.from_connection_string(self._connection_string)
            logger.info("sms_service_initialized")
        except Exception as e:
            logger.error("sms_service_init_failed", error=str(e))
        self._initialized = True

    @property
    def is_available(self) -> bool:
        return self._client is not None and self._sender_number is not None

    def address_for(self, voter: EligibleVoter) -> Optional[str]:
        if not voter.phone:
            return None
        return normalize_phone_number(voter.phone)

    async def send(self, address: str, code: str, context: dict[str, Any]) -> bool:
        """
        Send a one-time code via SMS.

        Args:
            address: Phone number in E.164 format
            code: The plaintext one-time code
            context: reg_no and expires_minutes for the message body

        Returns:
            True if sent successfully, False otherwise
        """
        self.initialize()

        if not self.is_available:
            logger.warning("sms_service_unavailable", action="otp", to=mask_phone(address))
            return False

        minutes = context.get("expires_minutes", settings.OTP_EXPIRY_SECONDS // 60)
        message = (
            f"Your {settings.APP_NAME} verification code is: {code}\n"
            f"Reg No: {context.get('reg_no', '')}\n"
            f"Valid for {minutes} minutes. Do not share this code."
        )

        try:
            responses = await asyncio.to_thread(
                self._client.send,
                from_=self._sender_number,
                to=address,
                message=message,
            )
        except Exception as e:
            logger.error("sms_send_error", error=str(e), to=mask_phone(address))
            return False

        response = responses[0] if isinstance(responses, list) else responses
        if response.successful:
            logger.info("sms_sent", to=mask_phone(address), message_id=getattr(response, "message_id", None))
            return True

        logger.error("sms_send_failed", error=response.error_message, to=mask_phone(address))
        return False
