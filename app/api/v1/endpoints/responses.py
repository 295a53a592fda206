import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from app.api.deps import get_inbound_service
from app.core.config import settings
from app.core.exceptions import ValidationFailed
from app.schemas.notification import InboundReplyResponse
from app.services.inbound_responses import InboundResponseService

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("")
async def verify_webhook(
    hub_mode: Optional[str] = Query(None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(None, alias="hub.verify_token"),
    hub_challenge: Optional[str] = Query(None, alias="hub.challenge"),
):
    """
    Handles the webhook verification handshake from Meta.
    """
    if hub_mode == "subscribe" and hub_verify_token and hub_verify_token == settings.meta_verify_token:
        logger.info("Webhook verification succeeded")
        return int(hub_challenge) if hub_challenge and hub_challenge.isdigit() else hub_challenge

    logger.warning("Webhook verification failed")
    raise HTTPException(status_code=403, detail="Verification failed")

@router.post("")
async def handle_customer_reply(
    request: Request,
    service: InboundResponseService = Depends(get_inbound_service),
):
    """
    Receives a customer's WhatsApp reply, records it against their pending
    appointment and answers them.
    """
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationFailed("Invalid JSON")
    if not isinstance(payload, dict):
        raise ValidationFailed("Invalid payload")

    result = await service.handle(payload)
    if result.ignored:
        return {"message": "ignored"}
    if not result.matched:
        return {"message": "no match"}

    return InboundReplyResponse(
        success=True,
        appointment_id=result.appointment_id,
        response_type=result.response_type.value,
        confirmation_status=result.confirmation_status.value,
        reply=result.reply,
    ).model_dump(by_alias=True)
