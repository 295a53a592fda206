import logging
from typing import Optional

import httpx

from app.core.config import settings
from app.schemas.delivery import DeliveryResult
from app.shared.phone import normalize_phone

logger = logging.getLogger(__name__)

async def send_text_message(
    recipient_number: str,
    text: str,
    phone_number_id: Optional[str] = None,
    access_token: Optional[str] = None,
) -> DeliveryResult:
    """
    Sends a text message using the WhatsApp Business API.
    Uses the business's own phone number id / access token when provided and
    falls back to the system default.
    """
    token = access_token or settings.meta_access_token
    sender_id = phone_number_id or settings.whatsapp_phone_number_id
    if not token or not sender_id:
        logger.error("No WhatsApp access token or phone number id configured.")
        return DeliveryResult(success=False, error="WhatsApp is not configured")

    url = f"https://graph.facebook.com/{settings.meta_api_version}/{sender_id}/messages"

    headers = {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }

    payload = {
        "messaging_product": "whatsapp",
        "recipient_type": "individual",
        "to": normalize_phone(recipient_number),
        "type": "text",
        "text": {"preview_url": False, "body": text},
    }

    async with httpx.AsyncClient(timeout=10.0) as client:
        try:
            response = await client.post(url, headers=headers, json=payload)
            response_data = response.json()

            if response.status_code != 200:
                error = response_data.get("error", {}).get("message") or f"HTTP {response.status_code}"
                logger.error(f"Error sending WhatsApp message (Status {response.status_code}): {response_data}")
                return DeliveryResult(success=False, error=error)

            messages = response_data.get("messages") or [{}]
            message_id = messages[0].get("id")
            logger.info(f"WhatsApp message sent to {recipient_number}: {message_id}")
            return DeliveryResult(success=True, external_id=message_id)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Exception during WhatsApp message sending: {e}")
            return DeliveryResult(success=False, error=str(e))
