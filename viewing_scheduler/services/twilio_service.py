"""
Twilio Messaging Service
Sends viewing confirmations and reminders over SMS or WhatsApp
"""

import logging
from typing import Optional

import httpx

from ..config import (
    MESSAGING_CHANNEL,
    TWILIO_ACCOUNT_SID,
    TWILIO_API_BASE_URL,
    TWILIO_AUTH_TOKEN,
    TWILIO_FROM_NUMBER,
    TWILIO_MESSAGING_SERVICE_SID,
)

logger = logging.getLogger(__name__)


class MessageDeliveryError(Exception):
    """Message could not be handed to the provider"""


class TwilioMessagingGateway:
    """Outbound text gateway backed by the Twilio Messages API"""

    def __init__(
        self,
        account_sid: Optional[str] = TWILIO_ACCOUNT_SID,
        auth_token: Optional[str] = TWILIO_AUTH_TOKEN,
        from_number: Optional[str] = TWILIO_FROM_NUMBER,
        messaging_service_sid: Optional[str] = TWILIO_MESSAGING_SERVICE_SID,
        channel: str = MESSAGING_CHANNEL,
        base_url: str = TWILIO_API_BASE_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.messaging_service_sid = messaging_service_sid
        self.channel = channel
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _address(self, phone: str) -> str:
        if self.channel == "whatsapp" and not phone.startswith("whatsapp:"):
            return f"whatsapp:{phone}"
        return phone

    async def send_text(self, to: str, body: str) -> str:
        """
        Send a text message

        Args:
            to: Recipient phone number in E.164 format
            body: Message content

        Returns:
            Twilio message SID

        Raises:
            MessageDeliveryError: missing configuration, invalid number or provider failure
        """
        if not to or not to.startswith("+"):
            logger.warning(f"Phone number not in E.164 format: {to}")
            raise MessageDeliveryError("Phone number must be in E.164 format (e.g., +1234567890)")

        if not self.account_sid or not self.auth_token:
            raise MessageDeliveryError("Twilio credentials are not configured")

        data = {"To": self._address(to), "Body": body}
        if self.messaging_service_sid:
            data["MessagingServiceSid"] = self.messaging_service_sid
            logger.debug("Using Messaging Service SID")
        elif self.from_number:
            data["From"] = self._address(self.from_number)
            logger.debug(f"Using From number: {self.from_number}")
        else:
            raise MessageDeliveryError("No Twilio sender configured")

        try:
            logger.info(f"🚀 Sending {self.channel} message to {to}")
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/Accounts/{self.account_sid}/Messages.json",
                    auth=(self.account_sid, self.auth_token),
                    data=data,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            logger.error(f"Twilio API error: {str(e)}")
            raise MessageDeliveryError(str(e)) from e

        logger.info(f"📡 Twilio API response status: {response.status_code}")

        if response.status_code in [200, 201]:
            message_sid = response.json().get("sid")
            logger.info(f"✅ Message sent successfully to {to} (SID: {message_sid})")
            return message_sid

        try:
            error_data = response.json()
        except ValueError:
            error_data = {}
        error_message = error_data.get("message", "Unknown error")
        error_code = error_data.get("code")

        logger.error(f"❌ Twilio API error [{error_code}]: {error_message}")
        raise MessageDeliveryError(
            f"[{error_code}] {error_message}" if error_code else error_message
        )
