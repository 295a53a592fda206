from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_current_user, get_repository
from app.schemas.preferences import NotificationPreferences, NotificationPreferencesUpdate

router = APIRouter()

@router.get("", response_model=NotificationPreferences)
async def get_my_preferences(
    current_user = Depends(get_current_user),
    repo = Depends(get_repository),
):
    """
    Get the notification preferences of the authenticated owner.
    Owners who never saved any get the defaults.
    """
    row = repo.get_notification_preferences(str(current_user.id))
    if not row:
        return NotificationPreferences()
    return NotificationPreferences(**{k: v for k, v in row.items() if v is not None})

@router.put("", response_model=NotificationPreferences)
async def update_my_preferences(
    patch: NotificationPreferencesUpdate,
    current_user = Depends(get_current_user),
    repo = Depends(get_repository),
):
    data = patch.model_dump(exclude_none=True)
    if not data:
        raise HTTPException(status_code=400, detail="No preferences to update.")

    try:
        row = repo.upsert_notification_preferences(str(current_user.id), data)
    except Exception:
        raise HTTPException(status_code=500, detail="Failed to update notification preferences.")

    return NotificationPreferences(**{k: v for k, v in row.items() if v is not None})
