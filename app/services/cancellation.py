import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from app.core.exceptions import NotFound, ValidationFailed, WorkflowError
from app.core.timeutils import utc_now
from app.models.appointment import CalendarAction, CancellationChannel
from app.models.notification import NotificationKind
from app.services.appointment_state import cancellation_update, is_cancelled, is_late_cancellation
from app.services.calendar_service import CalendarService
from app.services.cancellation_tokens import CancellationTokenService
from app.services.notification_service import NotificationDispatcher
from app.services.side_effects import SideEffectResult, run_best_effort
from app.services.templates import CANCELLATION_REASON_TEMPLATE, render
from app.services.waiting_list import WaitingListPromoter

logger = logging.getLogger(__name__)


class CancellationOutcome(BaseModel):
    appointment: Dict[str, Any]
    is_late_cancellation: bool
    already_cancelled: bool = False
    side_effects: List[SideEffectResult] = []


class TokenPreview(BaseModel):
    is_expired: bool
    is_used: bool
    is_cancelled: bool
    is_late_cancellation: bool
    appointment: Dict[str, Any]


async def run_post_cancellation_hooks(
    appointment: Dict[str, Any],
    promoter: WaitingListPromoter,
    calendar: CalendarService,
) -> List[SideEffectResult]:
    """
    Waiting-list promotion then calendar mirroring. A late cancellation stays
    on the calendar (marked cancelled) so the owner sees the charged slot.
    """
    calendar_action = CalendarAction.UPDATE if appointment.get("late_cancellation") else CalendarAction.DELETE
    return [
        await run_best_effort("waiting_list", promoter.promote, appointment),
        await run_best_effort("calendar_sync", calendar.sync, appointment, calendar_action),
    ]


class CancellationService:
    """Customer self-service cancellation through a single-use link token."""

    def __init__(
        self,
        repository,
        token_service: CancellationTokenService,
        dispatcher: NotificationDispatcher,
        promoter: WaitingListPromoter,
        calendar: CalendarService,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.token_service = token_service
        self.dispatcher = dispatcher
        self.promoter = promoter
        self.calendar = calendar
        self.clock = clock

    def _load(self, token: Optional[str]):
        if not token:
            raise ValidationFailed("Token is required")

        state = self.token_service.inspect(token)
        if state is None:
            raise NotFound("Invalid cancellation token")

        appointment = self.repository.get_appointment(state.appointment_id)
        if not appointment:
            raise NotFound("Appointment not found")
        return state, appointment

    async def validate(self, token: Optional[str]) -> TokenPreview:
        """Read-only check used by the cancellation page before the customer confirms."""
        state, appointment = self._load(token)
        return TokenPreview(
            is_expired=state.is_expired,
            is_used=state.used,
            is_cancelled=is_cancelled(appointment),
            is_late_cancellation=is_late_cancellation(appointment, self.clock()),
            appointment=appointment,
        )

    async def consume(self, token: Optional[str], reason: Optional[str] = None) -> CancellationOutcome:
        """
        Cancels the token's appointment exactly once. Expired and used tokens
        are rejected; an appointment that is already cancelled is reported as
        such without repeating any side effect.
        """
        if not token:
            raise ValidationFailed("Token is required")

        state = self.token_service.inspect(token)
        if state is None:
            raise NotFound("Invalid cancellation token")
        if state.is_expired:
            raise NotFound("Cancellation token has expired")
        if state.used:
            raise NotFound("Cancellation token has already been used")

        appointment = self.repository.get_appointment(state.appointment_id)
        if not appointment:
            raise NotFound("Appointment not found")

        update = cancellation_update(appointment, self.clock(), CancellationChannel.TOKEN, reason)
        if update is None:
            logger.info(f"Appointment {appointment['id']} was already cancelled")
            return CancellationOutcome(
                appointment=appointment,
                is_late_cancellation=bool(appointment.get("late_cancellation")),
                already_cancelled=True,
            )

        if not self.token_service.claim(token):
            raise NotFound("Cancellation token has already been used")

        if not self.repository.update_appointment(appointment["id"], update):
            self.token_service.release(token)
            raise WorkflowError("Failed to cancel appointment")

        cancelled = {**appointment, **update}
        logger.info(f"Appointment {cancelled['id']} cancelled via link (late={update['late_cancellation']})")

        side_effects = [
            await run_best_effort(
                "cancellation_notification",
                self.dispatcher.dispatch,
                NotificationKind.CANCELLATION.value,
                appointment_id=cancelled["id"],
                custom_message=render(CANCELLATION_REASON_TEMPLATE, reason=reason) if reason else None,
            )
        ]
        side_effects += await run_post_cancellation_hooks(cancelled, self.promoter, self.calendar)

        return CancellationOutcome(
            appointment=cancelled,
            is_late_cancellation=update["late_cancellation"],
            side_effects=side_effects,
        )
