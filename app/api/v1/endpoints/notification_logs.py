from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from app.api.deps import get_current_user, get_repository
from app.schemas.notification import NotificationLogResponse

router = APIRouter()

@router.get("", response_model=List[NotificationLogResponse])
async def list_notification_logs(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    notification_type: Optional[str] = Query(None, alias="notificationType"),
    current_user = Depends(get_current_user),
    repo = Depends(get_repository),
):
    """
    Retrieve the notification history (sent, failed and received messages)
    of the authenticated owner, newest first.
    """
    return repo.list_notification_logs(str(current_user.id), notification_type, limit, offset)
