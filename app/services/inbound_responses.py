import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from app.core.config import settings
from app.core.exceptions import ValidationFailed, WorkflowError
from app.core.timeutils import format_date_he, format_time, local_today, utc_now
from app.models.appointment import CancellationChannel, ConfirmationStatus
from app.models.notification import Channel, LogStatus
from app.services.appointment_state import (
    InvalidTransition,
    cancellation_update,
    confirmation_update,
    response_recorded_update,
)
from app.services.calendar_service import CalendarService
from app.services.cancellation import run_post_cancellation_hooks
from app.services.message_logger import build_log_entry, log_notifications
from app.services.notification_service import NotificationDispatcher
from app.services.response_classifier import ResponseType, classify_response
from app.services.side_effects import SideEffectResult, run_best_effort
from app.services.templates import (
    DEFAULT_BUSINESS_NAME,
    REPLY_CANCELLED_TEMPLATE,
    REPLY_CONFIRMED_TEMPLATE,
    REPLY_UNKNOWN_TEMPLATE,
    render,
)
from app.services.waiting_list import WaitingListPromoter
from app.shared.phone import normalize_phone

logger = logging.getLogger(__name__)

CANCEL_REASON = "Customer cancelled via WhatsApp"

REPLY_TEMPLATES = {
    ResponseType.CONFIRMED: REPLY_CONFIRMED_TEMPLATE,
    ResponseType.CANCELLED: REPLY_CANCELLED_TEMPLATE,
    ResponseType.UNKNOWN: REPLY_UNKNOWN_TEMPLATE,
}


class InboundMessage(BaseModel):
    sender_phone: str
    text: str
    message_id: Optional[str] = None


class InboundResult(BaseModel):
    matched: bool
    ignored: bool = False
    appointment_id: Optional[str] = None
    response_type: Optional[ResponseType] = None
    confirmation_status: Optional[ConfirmationStatus] = None
    reply: Optional[str] = None
    side_effects: List[SideEffectResult] = []


def extract_inbound_message(payload: Dict[str, Any]) -> Optional[InboundMessage]:
    """
    Accepts the flat provider shape ({from|phone, text|message|body, id|messageId})
    and the Meta Cloud API webhook envelope. Returns the first text message.
    """
    for entry in payload.get("entry", []) or []:
        for change in entry.get("changes", []):
            value = change.get("value", {})
            for message in value.get("messages", []):
                body = message.get("text", {}).get("body")
                if message.get("type") == "text" and message.get("from") and body:
                    return InboundMessage(sender_phone=message["from"], text=body, message_id=message.get("id"))

    sender = payload.get("from") or payload.get("phone")
    text = payload.get("text") or payload.get("message") or payload.get("body")
    if isinstance(text, dict):
        text = text.get("body")
    if not sender or not text or not isinstance(text, str):
        return None
    return InboundMessage(
        sender_phone=str(sender),
        text=text,
        message_id=payload.get("id") or payload.get("messageId"),
    )


class InboundResponseService:
    """Turns a customer's reply to a reminder into a confirmation or a cancellation."""

    def __init__(
        self,
        repository,
        dispatcher: NotificationDispatcher,
        promoter: WaitingListPromoter,
        calendar: CalendarService,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.dispatcher = dispatcher
        self.promoter = promoter
        self.calendar = calendar
        self.clock = clock

    def find_pending_appointment(self, sender_phone: str) -> Optional[Dict[str, Any]]:
        """Most imminent reminded appointment of this phone that still awaits an answer."""
        canonical = normalize_phone(sender_phone)
        if not canonical:
            return None
        since = (local_today(self.clock()) - timedelta(days=settings.response_lookback_days)).isoformat()
        for appointment in self.repository.list_pending_confirmations(since):
            customer_phone = (appointment.get("customers") or {}).get("phone_number")
            if customer_phone and normalize_phone(customer_phone) == canonical:
                return appointment
        return None

    async def handle(self, payload: Dict[str, Any]) -> InboundResult:
        message = extract_inbound_message(payload)
        if message is None:
            if payload.get("entry") is not None:
                # Meta also posts delivery/read statuses to this webhook
                logger.debug("Webhook envelope without a text message ignored")
                return InboundResult(matched=False, ignored=True)
            raise ValidationFailed("Missing required fields")

        now = self.clock()
        logger.info(f"Processing response from {normalize_phone(message.sender_phone)}: '{message.text}'")

        appointment = self.find_pending_appointment(message.sender_phone)
        if appointment is None:
            logger.info(f"No pending appointment found for phone {message.sender_phone}")
            await log_notifications(self.repository, [build_log_entry(
                user_id=settings.unmatched_owner_id,
                channel=Channel.WHATSAPP.value,
                notification_type="response",
                phone_number=message.sender_phone,
                message_content=f"Unmatched response: {message.text}",
                status=LogStatus.UNMATCHED.value,
                at=now.isoformat(),
                external_message_id=message.message_id,
            )])
            return InboundResult(matched=False)

        response_type = classify_response(message.text)
        owner_id = appointment.get("user_id")

        await log_notifications(self.repository, [build_log_entry(
            user_id=owner_id,
            channel=Channel.WHATSAPP.value,
            notification_type="response",
            phone_number=message.sender_phone,
            message_content=message.text,
            status=LogStatus.RECEIVED.value,
            at=now.isoformat(),
            appointment_id=appointment["id"],
            external_message_id=message.message_id,
        )])

        try:
            if response_type == ResponseType.CONFIRMED:
                update = confirmation_update(appointment, now, message.text)
                confirmation_status = ConfirmationStatus.CONFIRMED
            elif response_type == ResponseType.CANCELLED:
                update = cancellation_update(appointment, now, CancellationChannel.WHATSAPP, CANCEL_REASON)
                if update is not None:
                    update["confirmation_response"] = message.text
                confirmation_status = ConfirmationStatus.CANCELLED
            else:
                update = response_recorded_update(message.text)
                confirmation_status = ConfirmationStatus.PENDING
        except InvalidTransition as e:
            logger.warning(f"Reply not applied to appointment {appointment['id']}: {e}")
            return InboundResult(matched=False)

        if update is not None and not self.repository.update_appointment(appointment["id"], update):
            raise WorkflowError(f"Failed to update appointment {appointment['id']}")
        updated = {**appointment, **(update or {})}

        business = self.repository.get_whatsapp_settings(owner_id) or {}
        reply = render(
            REPLY_TEMPLATES[response_type],
            customer_name=(appointment.get("customers") or {}).get("full_name"),
            date=format_date_he(appointment["date"]),
            time=format_time(appointment["start_time"]),
            business_name=business.get("business_name") or DEFAULT_BUSINESS_NAME,
        )

        side_effects = [
            await run_best_effort(
                "auto_response",
                self.dispatcher.send_direct,
                message.sender_phone,
                reply,
                user_id=owner_id,
                notification_type="auto_response",
                appointment_id=appointment["id"],
            )
        ]
        if response_type == ResponseType.CANCELLED and update is not None:
            side_effects += await run_post_cancellation_hooks(updated, self.promoter, self.calendar)

        logger.info(f"Processed {response_type.value} response for appointment {appointment['id']}")
        return InboundResult(
            matched=True,
            appointment_id=appointment["id"],
            response_type=response_type,
            confirmation_status=confirmation_status,
            reply=reply,
            side_effects=side_effects,
        )
