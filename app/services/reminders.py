import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel

from app.core.config import settings
from app.core.timeutils import appointment_start, hours_until, local_today, utc_now
from app.models.notification import NotificationKind
from app.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)


class ReminderOutcome(BaseModel):
    appointment_id: str
    customer_name: Optional[str] = None
    user_id: Optional[str] = None
    phone: Optional[str] = None
    notification_type: Optional[str] = None
    status: str  # sent | failed | skipped | error
    error: Optional[str] = None


def reminder_kind(hours_left: float) -> NotificationKind:
    """Short-notice bookings get the same-day wording."""
    if hours_left <= settings.reminder_short_notice_hours:
        return NotificationKind.REMINDER_3H
    return NotificationKind.REMINDER_24H


class ReminderJob:
    """
    Cron-triggered batch. Appointments whose reminder_sent_at is set are never
    selected again, so re-running the job does not duplicate reminders while a
    failed send stays eligible for the next run.
    """
    def __init__(self, repository, dispatcher: NotificationDispatcher, clock: Callable[[], datetime] = utc_now):
        self.repository = repository
        self.dispatcher = dispatcher
        self.clock = clock

    def due_appointments(self, now: datetime) -> Dict[Optional[str], List[Tuple[Dict[str, Any], float]]]:
        """Due appointments grouped by owner, in date/time order."""
        today = local_today(now)
        candidates = self.repository.list_reminder_candidates(
            today.isoformat(), (today + timedelta(days=1)).isoformat()
        )

        grouped: Dict[Optional[str], List[Tuple[Dict[str, Any], float]]] = {}
        for appointment in candidates:
            hours_left = hours_until(appointment_start(appointment), now)
            if 0 < hours_left <= settings.reminder_window_hours:
                grouped.setdefault(appointment.get("user_id"), []).append((appointment, hours_left))
        return grouped

    async def run(self) -> List[ReminderOutcome]:
        now = self.clock()
        results: List[ReminderOutcome] = []

        for owner_id, due in self.due_appointments(now).items():
            pending = list(due)
            try:
                business = self.repository.get_whatsapp_settings(owner_id) or {}
                if business.get("auto_reminders_enabled") is False:
                    logger.info(f"Automatic reminders are disabled for user {owner_id}, skipping {len(due)} appointments")
                    results.extend(self._outcome(a, "skipped", error="Automatic reminders are disabled") for a, _ in due)
                    continue

                while pending:
                    appointment, hours_left = pending[0]
                    results.append(await self._remind(appointment, hours_left))
                    pending.pop(0)
            except Exception as e:
                # One owner's failure must not stop the others
                logger.exception(f"Error processing reminders for user {owner_id}: {e}")
                results.extend(self._outcome(a, "error", error=str(e)) for a, _ in pending)

        logger.info(f"Reminder run finished: {len(results)} appointments processed")
        return results

    async def _remind(self, appointment: Dict[str, Any], hours_left: float) -> ReminderOutcome:
        kind = reminder_kind(hours_left)
        phone = (appointment.get("customers") or {}).get("phone_number")
        if not phone:
            return self._outcome(appointment, "skipped", kind, "Customer phone number not found")

        result = await self.dispatcher.dispatch(kind.value, appointment_id=appointment["id"])
        if result.success:
            return self._outcome(appointment, "sent", kind)
        return self._outcome(appointment, "failed", kind, result.error)

    def _outcome(
        self,
        appointment: Dict[str, Any],
        status: str,
        kind: Optional[NotificationKind] = None,
        error: Optional[str] = None,
    ) -> ReminderOutcome:
        customer = appointment.get("customers") or {}
        return ReminderOutcome(
            appointment_id=appointment["id"],
            customer_name=customer.get("full_name"),
            user_id=appointment.get("user_id"),
            phone=customer.get("phone_number"),
            notification_type=kind.value if kind else None,
            status=status,
            error=error,
        )
