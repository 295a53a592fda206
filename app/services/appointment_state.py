"""
Appointment lifecycle transitions.

    scheduled --(inbound "yes")------------------> confirmed
    scheduled --(token | inbound "no" | admin)---> cancelled

Cancellation is one-way and completed is terminal. Each function returns the column update to persist
and never touches storage itself.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from app.core.config import settings
from app.core.exceptions import ValidationFailed
from app.core.timeutils import appointment_start, hours_until
from app.models.appointment import AppointmentStatus, CancellationChannel, ConfirmationStatus


class InvalidTransition(ValidationFailed):
    pass


def is_cancelled(appointment: Dict[str, Any]) -> bool:
    return (
        appointment.get("status") == AppointmentStatus.CANCELLED.value
        or appointment.get("confirmation_status") == ConfirmationStatus.CANCELLED.value
    )


def is_late_cancellation(appointment: Dict[str, Any], now: datetime, threshold_hours: Optional[float] = None) -> bool:
    """True when fewer than threshold_hours remain before the start. Exactly the threshold is not late."""
    threshold = settings.late_cancellation_hours if threshold_hours is None else threshold_hours
    return hours_until(appointment_start(appointment), now) < threshold


def cancellation_update(
    appointment: Dict[str, Any],
    now: datetime,
    channel: CancellationChannel,
    reason: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """
    Update for scheduled -> cancelled, or None when the appointment is
    already cancelled (a repeated cancellation is a no-op). A completed
    appointment cannot be cancelled.
    """
    if is_cancelled(appointment):
        return None
    if appointment.get("status") == AppointmentStatus.COMPLETED.value:
        raise InvalidTransition(f"Appointment {appointment.get('id')} is already completed")

    late = is_late_cancellation(appointment, now)
    return {
        "status": AppointmentStatus.CANCELLED.value,
        "confirmation_status": ConfirmationStatus.CANCELLED.value,
        "cancel_reason": reason,
        "cancelled_at": now.isoformat(),
        "cancellation_channel": channel.value,
        "late_cancellation": late,
        # Admins can waive the charge later
        "payment_required": late,
    }


def confirmation_update(appointment: Dict[str, Any], now: datetime, response_text: str) -> Dict[str, Any]:
    """Update for scheduled -> confirmed. Cancelled appointments cannot be confirmed."""
    if is_cancelled(appointment):
        raise InvalidTransition(f"Appointment {appointment.get('id')} is cancelled and cannot be confirmed")
    if appointment.get("status") == AppointmentStatus.COMPLETED.value:
        raise InvalidTransition(f"Appointment {appointment.get('id')} is already completed")

    return {
        "confirmation_status": ConfirmationStatus.CONFIRMED.value,
        "confirmed_at": now.isoformat(),
        "confirmation_response": response_text,
    }


def response_recorded_update(response_text: str) -> Dict[str, Any]:
    """An unclassified reply is stored for the owner to read; the state does not move."""
    return {"confirmation_response": response_text}
