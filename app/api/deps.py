from datetime import datetime
from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.supabase_client import get_supabase
from app.core.timeutils import utc_now
from app.db.repository import repository
from app.services.calendar_service import CalendarService
from app.services.cancellation import CancellationService
from app.services.cancellation_tokens import CancellationTokenService
from app.services.daily_summary import DailySummaryJob
from app.services.inbound_responses import InboundResponseService
from app.services.notification_service import NotificationDispatcher, Sender, sms_sender, whatsapp_sender
from app.services.reminders import ReminderJob
from app.services.waiting_list import WaitingListPromoter

security = HTTPBearer()

async def get_current_user(auth: HTTPAuthorizationCredentials = Depends(security)):
    """
    Verifies the Supabase JWT and returns the user object.
    """
    try:
        res = get_supabase().auth.get_user(auth.credentials)
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
        )
    if not res or not res.user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return res.user

# --- workflow wiring; each request gets fresh services around the shared repository ---

def get_repository():
    return repository

def get_clock() -> Callable[[], datetime]:
    return utc_now

def get_whatsapp_sender() -> Sender:
    return whatsapp_sender

def get_sms_sender() -> Sender:
    return sms_sender

def get_token_service(repo=Depends(get_repository), clock=Depends(get_clock)) -> CancellationTokenService:
    return CancellationTokenService(repo, clock=clock)

def get_dispatcher(
    repo=Depends(get_repository),
    tokens: CancellationTokenService = Depends(get_token_service),
    whatsapp: Sender = Depends(get_whatsapp_sender),
    sms: Sender = Depends(get_sms_sender),
    clock=Depends(get_clock),
) -> NotificationDispatcher:
    return NotificationDispatcher(repo, tokens, whatsapp=whatsapp, sms=sms, clock=clock)

def get_calendar_service(repo=Depends(get_repository), clock=Depends(get_clock)) -> CalendarService:
    return CalendarService(repo, clock=clock)

def get_promoter(
    repo=Depends(get_repository),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    clock=Depends(get_clock),
) -> WaitingListPromoter:
    return WaitingListPromoter(repo, dispatcher, clock=clock)

def get_cancellation_service(
    repo=Depends(get_repository),
    tokens: CancellationTokenService = Depends(get_token_service),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    promoter: WaitingListPromoter = Depends(get_promoter),
    calendar: CalendarService = Depends(get_calendar_service),
    clock=Depends(get_clock),
) -> CancellationService:
    return CancellationService(repo, tokens, dispatcher, promoter, calendar, clock=clock)

def get_inbound_service(
    repo=Depends(get_repository),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    promoter: WaitingListPromoter = Depends(get_promoter),
    calendar: CalendarService = Depends(get_calendar_service),
    clock=Depends(get_clock),
) -> InboundResponseService:
    return InboundResponseService(repo, dispatcher, promoter, calendar, clock=clock)

def get_reminder_job(
    repo=Depends(get_repository),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    clock=Depends(get_clock),
) -> ReminderJob:
    return ReminderJob(repo, dispatcher, clock=clock)

def get_daily_summary_job(
    repo=Depends(get_repository),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    clock=Depends(get_clock),
) -> DailySummaryJob:
    return DailySummaryJob(repo, dispatcher, clock=clock)
