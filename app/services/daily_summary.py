import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from app.core.timeutils import local_today, utc_now
from app.models.appointment import AppointmentStatus
from app.models.notification import Channel, LogStatus
from app.services.message_logger import build_log_entry, log_notifications
from app.services.notification_service import NotificationDispatcher
from app.services.templates import DAILY_SUMMARY_TEMPLATE, render

logger = logging.getLogger(__name__)


class DailySummaryOutcome(BaseModel):
    user_id: str
    status: str  # sent | failed
    channel: Optional[str] = None
    completed_appointments: int = 0
    cancelled_appointments: int = 0
    total_revenue: float = 0
    total_expenses: float = 0
    net_profit: float = 0
    error: Optional[str] = None


def _amount(value: float) -> str:
    value = round(value, 2)
    return str(int(value)) if value == int(value) else f"{value:.2f}"


def _total(rows: List[Dict[str, Any]]) -> float:
    return sum(float(row.get("amount") or 0) for row in rows)


class DailySummaryJob:
    """End-of-day digest for owners who enabled it in their notification preferences."""

    def __init__(self, repository, dispatcher: NotificationDispatcher, clock: Callable[[], datetime] = utc_now):
        self.repository = repository
        self.dispatcher = dispatcher
        self.clock = clock

    def build_message(self, day: str, appointments: List[Dict[str, Any]], revenues, expenses) -> Dict[str, Any]:
        completed = [a for a in appointments if a.get("status") == AppointmentStatus.COMPLETED.value]
        cancelled = [a for a in appointments if a.get("status") == AppointmentStatus.CANCELLED.value]
        total_revenue = _total(revenues)
        total_expenses = _total(expenses)

        message = render(
            DAILY_SUMMARY_TEMPLATE,
            date=day,
            completed=str(len(completed)),
            cancelled=str(len(cancelled)),
            revenue=_amount(total_revenue),
            expenses=_amount(total_expenses),
            net=_amount(total_revenue - total_expenses),
        )
        if completed:
            clients = "\n".join(
                f"• {(a.get('customers') or {}).get('full_name') or ''} - {a.get('service_type')}" for a in completed
            )
            message += f"\n\n👥 לקוחות שטופלו:\n{clients}"
        if expenses:
            lines = "\n".join(f"• {e.get('category')}: ₪{_amount(float(e.get('amount') or 0))}" for e in expenses)
            message += f"\n\n🧾 הוצאות:\n{lines}"
        message += "\n\nזכרי להזין את כל ההוצאות מהיום!"

        return {
            "message": message,
            "completed": len(completed),
            "cancelled": len(cancelled),
            "revenue": total_revenue,
            "expenses": total_expenses,
        }

    async def run(self, day: Optional[str] = None) -> List[DailySummaryOutcome]:
        now = self.clock()
        day = day or local_today(now).isoformat()
        results: List[DailySummaryOutcome] = []

        recipients = self.repository.list_daily_summary_recipients()
        logger.info(f"Generating daily summary for {day}: {len(recipients)} owners")

        for prefs in recipients:
            owner_id = prefs["user_id"]
            try:
                summary = self.build_message(
                    day,
                    self.repository.list_appointments_on(
                        owner_id, day, [AppointmentStatus.COMPLETED.value, AppointmentStatus.CANCELLED.value]
                    ),
                    self.repository.list_revenues(owner_id, day),
                    self.repository.list_expenses(owner_id, day),
                )
                outcome = DailySummaryOutcome(
                    user_id=owner_id,
                    status="sent",
                    completed_appointments=summary["completed"],
                    cancelled_appointments=summary["cancelled"],
                    total_revenue=summary["revenue"],
                    total_expenses=summary["expenses"],
                    net_profit=summary["revenue"] - summary["expenses"],
                )

                business = self.repository.get_whatsapp_settings(owner_id) or {}
                phone = business.get("business_whatsapp_number")
                if phone:
                    delivery = await self.dispatcher.send_direct(
                        phone, summary["message"], user_id=owner_id, notification_type="daily_summary"
                    )
                    outcome.status = "sent" if delivery.success else "failed"
                    outcome.channel = delivery.method.value if delivery.method else None
                    outcome.error = delivery.error
                else:
                    # No phone on file: the summary is only visible in the dashboard log
                    await log_notifications(self.repository, [build_log_entry(
                        user_id=owner_id,
                        channel=Channel.DASHBOARD.value,
                        notification_type="daily_summary",
                        phone_number=None,
                        message_content=summary["message"],
                        status=LogStatus.SENT.value,
                        at=now.isoformat(),
                    )])
                    outcome.channel = Channel.DASHBOARD.value

                results.append(outcome)
            except Exception as e:
                logger.exception(f"Error sending daily summary to user {owner_id}: {e}")
                results.append(DailySummaryOutcome(user_id=owner_id, status="failed", error=str(e)))

        return results
