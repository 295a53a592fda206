import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel

from app.core.config import settings
from app.core.timeutils import appointment_start, format_date_he, format_time, hours_until, utc_now
from app.models.notification import NotificationKind
from app.services.notification_service import DispatchResult, NotificationDispatcher
from app.services.templates import notification_template, render

logger = logging.getLogger(__name__)


class PromotionResult(BaseModel):
    entry_id: str
    customer_id: Optional[str] = None
    phone_number: str
    delivery: DispatchResult


class WaitingListPromoter:
    """
    Offers a freed slot to the client who has waited longest for the same
    service. Only one client is notified per cancellation.
    """
    def __init__(self, repository, dispatcher: NotificationDispatcher, clock: Callable[[], datetime] = utc_now):
        self.repository = repository
        self.dispatcher = dispatcher
        self.clock = clock

    async def promote(self, appointment: Dict[str, Any]) -> Optional[PromotionResult]:
        service_type = appointment.get("service_type")
        if not service_type:
            return None

        now = self.clock()
        hours_left = hours_until(appointment_start(appointment), now)
        if hours_left < 0 or hours_left > settings.waiting_list_horizon_days * 24:
            logger.info(f"Freed slot of appointment {appointment.get('id')} is outside the waiting-list horizon")
            return None

        entries = self.repository.list_waiting_entries(service_type, settings.waiting_list_batch_size)
        if not entries:
            logger.info(f"No one is waiting for '{service_type}'")
            return None

        # FIFO by created_at. Entries without a phone cannot be offered the slot,
        # so the earliest reachable one is chosen and the skipped ones are logged.
        entry = None
        for candidate in entries:
            if (candidate.get("customers") or {}).get("phone_number"):
                entry = candidate
                break
            logger.warning(f"Waiting-list entry {candidate['id']} has no phone number and was passed over")
        if entry is None:
            logger.warning(f"Waiting list for '{service_type}' has no reachable client among the first {len(entries)}")
            return None

        customer = entry["customers"]

        # Marked before sending and not rolled back if the send fails
        self.repository.mark_waiting_entry_notified(entry["id"], now.isoformat())

        owner_id = appointment.get("user_id")
        template = notification_template(
            NotificationKind.WAITING_LIST.value,
            self.repository.get_message_template(owner_id, NotificationKind.WAITING_LIST.value),
        )
        message = render(
            template,
            customer_name=customer.get("full_name"),
            service=service_type,
            date=format_date_he(appointment["date"]),
            time=format_time(appointment["start_time"]),
            employee_name=None,
        )

        delivery = await self.dispatcher.send_direct(
            customer["phone_number"],
            message,
            user_id=owner_id,
            notification_type=NotificationKind.WAITING_LIST.value,
        )
        if not delivery.success:
            logger.warning(f"Waiting-list entry {entry['id']} is marked notified but the message failed: {delivery.error}")

        return PromotionResult(
            entry_id=entry["id"],
            customer_id=customer.get("id"),
            phone_number=customer["phone_number"],
            delivery=delivery,
        )
