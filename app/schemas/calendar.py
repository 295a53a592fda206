from typing import Optional

from app.schemas.base import CamelModel

class CalendarSyncRequest(CamelModel):
    appointment_id: Optional[str] = None
    action: str = "update"

class CalendarSyncResponse(CamelModel):
    success: bool
    action: str
    status: str
    external_id: Optional[str] = None
    error: Optional[str] = None
