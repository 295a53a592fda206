from fastapi import APIRouter, Depends

from app.api.deps import get_calendar_service
from app.schemas.calendar import CalendarSyncRequest, CalendarSyncResponse
from app.services.calendar_service import CalendarService

router = APIRouter()

@router.post("", response_model=CalendarSyncResponse)
async def sync_calendar(
    request: CalendarSyncRequest,
    calendar: CalendarService = Depends(get_calendar_service),
):
    result = await calendar.sync_by_id(request.appointment_id, request.action)
    return CalendarSyncResponse(
        success=result.success,
        action=result.action.value,
        status=result.status,
        external_id=result.external_id,
        error=result.error,
    )
