"""
Renders appointment notifications and delivers them over WhatsApp with SMS
as the fallback channel.
"""
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel

from app.core.config import settings
from app.core.exceptions import NotFound, ValidationFailed
from app.core.timeutils import format_date_he, format_time, utc_now
from app.models.notification import (
    KINDS_WITH_CANCEL_LINK,
    KINDS_WITHOUT_APPOINTMENT_FLAGS,
    REMINDER_FLAGS,
    Channel,
    ChannelStatus,
    LogStatus,
    NotificationKind,
)
from app.schemas.delivery import DeliveryResult
from app.schemas.preferences import NotificationPreferences
from app.services.cancellation_tokens import CancellationTokenService
from app.services.message_logger import build_log_entry, log_notifications
from app.services.sms import sms_service
from app.services.templates import CANCELLATION_LINK_TEMPLATE, notification_template, render
from app.services.whatsapp import send_text_message

logger = logging.getLogger(__name__)

# (phone, text, business whatsapp settings) -> DeliveryResult
Sender = Callable[[str, str, Dict[str, Any]], Awaitable[DeliveryResult]]


class DispatchResult(BaseModel):
    success: bool
    method: Optional[Channel] = None
    whatsapp_status: ChannelStatus = ChannelStatus.NOT_ATTEMPTED
    sms_status: ChannelStatus = ChannelStatus.NOT_ATTEMPTED
    message: Optional[str] = None
    error: Optional[str] = None


async def whatsapp_sender(phone: str, text: str, business: Dict[str, Any]) -> DeliveryResult:
    return await send_text_message(
        recipient_number=phone,
        text=text,
        phone_number_id=business.get("phone_number_id"),
        access_token=business.get("access_token"),
    )


async def sms_sender(phone: str, text: str, business: Dict[str, Any]) -> DeliveryResult:
    return await sms_service.send_sms(phone, text)


class NotificationDispatcher:
    def __init__(
        self,
        repository,
        token_service: CancellationTokenService,
        whatsapp: Sender = whatsapp_sender,
        sms: Sender = sms_sender,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.token_service = token_service
        self.whatsapp = whatsapp
        self.sms = sms
        self.clock = clock

    def preferences(self, user_id: Optional[str]) -> NotificationPreferences:
        row = self.repository.get_notification_preferences(user_id)
        if not row:
            return NotificationPreferences()
        return NotificationPreferences(**{k: v for k, v in row.items() if v is not None})

    async def dispatch(
        self,
        notification_type: str,
        appointment_id: Optional[str] = None,
        custom_message: Optional[str] = None,
        phone_number: Optional[str] = None,
        admin_notification: bool = False,
    ) -> DispatchResult:
        """
        Sends a notification of the given kind for an appointment, or a direct
        message when only a phone number is given for custom / waiting_list.

        Raises ValidationFailed / NotFound before any send when the request
        cannot be served.
        """
        try:
            kind = NotificationKind(notification_type)
        except ValueError:
            raise ValidationFailed(f"Unknown notification type: {notification_type}")

        if phone_number and not appointment_id and kind in KINDS_WITHOUT_APPOINTMENT_FLAGS:
            if not custom_message:
                raise ValidationFailed("Message is required for direct notifications")
            return await self.send_direct(phone_number, custom_message, notification_type=kind.value)

        if not appointment_id:
            raise ValidationFailed("Missing required parameters")

        appointment = self.repository.get_appointment(appointment_id)
        if not appointment:
            raise NotFound("Appointment not found")

        owner_id = appointment.get("user_id")
        business = self.repository.get_whatsapp_settings(owner_id) or {}

        if admin_notification:
            recipient = business.get("business_whatsapp_number")
            if not recipient:
                raise ValidationFailed("Business phone number not found")
        else:
            recipient = phone_number or (appointment.get("customers") or {}).get("phone_number")
            if not recipient:
                raise ValidationFailed("Customer phone number not found")

        message = self.render_message(appointment, kind, custom_message)
        if kind in KINDS_WITH_CANCEL_LINK and not admin_notification:
            token = self.token_service.issue(appointment["id"])
            message += render(CANCELLATION_LINK_TEMPLATE, link=self.token_service.cancellation_link(token))

        result = await self._deliver(owner_id, recipient, message, kind.value, appointment["id"], business)

        if result.success and not admin_notification and kind not in KINDS_WITHOUT_APPOINTMENT_FLAGS:
            self._mark_sent(appointment["id"], kind, result.method)

        return result

    async def send_direct(
        self,
        phone_number: str,
        message: str,
        user_id: Optional[str] = None,
        notification_type: str = NotificationKind.CUSTOM.value,
        appointment_id: Optional[str] = None,
    ) -> DispatchResult:
        """Delivers a ready-made message. Never flags an appointment row."""
        if not phone_number:
            raise ValidationFailed("Phone number is required")
        business = self.repository.get_whatsapp_settings(user_id) or {}
        return await self._deliver(user_id, phone_number, message, notification_type, appointment_id, business)

    def render_message(self, appointment: Dict[str, Any], kind: NotificationKind, custom_message: Optional[str] = None) -> str:
        if custom_message:
            return custom_message

        override = self.repository.get_message_template(appointment.get("user_id"), kind.value)
        template = notification_template(kind.value, override)

        employee_name = None
        if "{employee_name}" in template:
            employee_name = self.repository.get_user_name(appointment.get("employee_id"))

        return render(
            template,
            customer_name=(appointment.get("customers") or {}).get("full_name"),
            service=appointment.get("service_type"),
            date=format_date_he(appointment["date"]),
            time=format_time(appointment["start_time"]),
            employee_name=employee_name,
        )

    async def _send(self, sender: Sender, channel: Channel, phone: str, message: str, business: Dict[str, Any]) -> DeliveryResult:
        try:
            return await sender(phone, message, business)
        except Exception as e:
            logger.exception(f"{channel.value} send to {phone} raised: {e}")
            return DeliveryResult(success=False, error=str(e))

    async def _deliver(
        self,
        user_id: Optional[str],
        phone: str,
        message: str,
        notification_type: str,
        appointment_id: Optional[str],
        business: Dict[str, Any],
    ) -> DispatchResult:
        prefs = self.preferences(user_id)
        now = self.clock().isoformat()
        log_owner = user_id or settings.unmatched_owner_id
        entries: List[Dict[str, Any]] = []
        errors: List[str] = []

        def record(channel: Channel, outcome: DeliveryResult) -> ChannelStatus:
            status = LogStatus.SENT if outcome.success else LogStatus.FAILED
            entries.append(build_log_entry(
                user_id=log_owner,
                channel=channel.value,
                notification_type=notification_type,
                phone_number=phone,
                message_content=message,
                status=status.value,
                at=now,
                appointment_id=appointment_id,
                error_message=outcome.error,
                external_message_id=outcome.external_id,
            ))
            if not outcome.success:
                errors.append(f"{channel.value}: {outcome.error}")
            return ChannelStatus.SENT if outcome.success else ChannelStatus.FAILED

        whatsapp_status = ChannelStatus.DISABLED
        sms_status = ChannelStatus.NOT_ATTEMPTED

        if prefs.whatsapp_enabled:
            outcome = await self._send(self.whatsapp, Channel.WHATSAPP, phone, message, business)
            whatsapp_status = record(Channel.WHATSAPP, outcome)

        if whatsapp_status != ChannelStatus.SENT:
            if prefs.sms_fallback_enabled:
                outcome = await self._send(self.sms, Channel.SMS, phone, message, business)
                sms_status = record(Channel.SMS, outcome)
            else:
                sms_status = ChannelStatus.DISABLED

        await log_notifications(self.repository, entries)

        method = None
        if whatsapp_status == ChannelStatus.SENT:
            method = Channel.WHATSAPP
        elif sms_status == ChannelStatus.SENT:
            method = Channel.SMS

        if method is None:
            logger.warning(f"{notification_type} to {phone} was not delivered (whatsapp={whatsapp_status.value}, sms={sms_status.value})")
        else:
            logger.info(f"{notification_type} delivered to {phone} via {method.value}")

        error = None
        if method is None:
            error = "; ".join(errors) or "All channels disabled"

        return DispatchResult(
            success=method is not None,
            method=method,
            whatsapp_status=whatsapp_status,
            sms_status=sms_status,
            message=message,
            error=error,
        )

    def _mark_sent(self, appointment_id: str, kind: NotificationKind, method: Channel):
        now = self.clock().isoformat()
        update: Dict[str, Any] = {
            f"{method.value}_notification_sent": True,
            "notification_sent_at": now,
        }
        if kind in REMINDER_FLAGS:
            update[REMINDER_FLAGS[kind]] = True
            update["reminder_sent_at"] = now
        self.repository.update_appointment(appointment_id, update)
