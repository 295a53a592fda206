from fastapi import APIRouter
from app.api.v1.endpoints import (
    calendar,
    cancellation,
    daily_summary,
    notification_logs,
    notifications,
    preferences,
    reminders,
    responses,
)

api_router = APIRouter()
api_router.include_router(cancellation.router, prefix="/appointment-cancellation", tags=["cancellation"])
api_router.include_router(reminders.router, prefix="/appointment-reminders", tags=["reminders"])
api_router.include_router(notifications.router, prefix="/whatsapp-notification", tags=["notifications"])
api_router.include_router(responses.router, prefix="/whatsapp-responses", tags=["responses"])
api_router.include_router(calendar.router, prefix="/calendar-sync", tags=["calendar"])
api_router.include_router(daily_summary.router, prefix="/daily-summary", tags=["daily-summary"])
api_router.include_router(preferences.router, prefix="/notification-preferences", tags=["preferences"])
api_router.include_router(notification_logs.router, prefix="/notification-logs", tags=["logs"])
