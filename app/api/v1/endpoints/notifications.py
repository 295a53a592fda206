from fastapi import APIRouter, Depends

from app.api.deps import get_dispatcher
from app.schemas.notification import NotificationRequest, NotificationResponse
from app.services.notification_service import NotificationDispatcher

router = APIRouter()

@router.post("", response_model=NotificationResponse)
async def send_notification(
    request: NotificationRequest,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """
    Sends an appointment notification (WhatsApp first, SMS as fallback) or a
    direct message to a phone number.
    """
    result = await dispatcher.dispatch(
        request.notification_type,
        appointment_id=request.appointment_id,
        custom_message=request.custom_message,
        phone_number=request.phone_number,
        admin_notification=request.admin_notification,
    )
    return NotificationResponse(
        success=result.success,
        method=result.method.value if result.method else None,
        whatsapp_status=result.whatsapp_status.value,
        sms_status=result.sms_status.value,
        error=result.error,
    )
