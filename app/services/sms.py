"""SMS fallback channel through Twilio"""

import logging
from typing import Optional

from twilio.base.exceptions import TwilioException
from twilio.http.async_http_client import AsyncTwilioHttpClient
from twilio.rest import Client

from app.core.config import settings
from app.schemas.delivery import DeliveryResult
from app.shared.phone import to_e164

logger = logging.getLogger(__name__)


class SMSService:
    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Optional[Client]:
        if self._client is None and settings.twilio_account_sid and settings.twilio_auth_token:
            self._client = Client(
                settings.twilio_account_sid,
                settings.twilio_auth_token,
                http_client=AsyncTwilioHttpClient(),
            )
        return self._client

    async def send_sms(self, to_phone: str, message_body: str) -> DeliveryResult:
        """Send an SMS. Provider errors are returned, not raised."""
        if not to_phone:
            return DeliveryResult(success=False, error="No phone number provided")

        if self.client is None or not settings.twilio_from_number:
            logger.error("Twilio credentials are not configured")
            return DeliveryResult(success=False, error="SMS is not configured")

        try:
            twilio_message = await self.client.messages.create_async(
                body=message_body,
                from_=settings.twilio_from_number,
                to=to_e164(to_phone),
            )
            logger.info(f"SMS sent successfully to {to_phone}: {twilio_message.sid}")
            return DeliveryResult(success=True, external_id=twilio_message.sid)

        except TwilioException as e:
            logger.error(f"Twilio error sending SMS to {to_phone}: {str(e)}")
            return DeliveryResult(success=False, error=str(e))


# Create service instance
sms_service = SMSService()
