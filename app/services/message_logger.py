from typing import Any, Dict, List, Optional
import logging

from app.models.notification import LogStatus

logger = logging.getLogger(__name__)

def build_log_entry(
    user_id: str,
    channel: str,
    notification_type: str,
    phone_number: Optional[str],
    message_content: str,
    status: str,
    at: str,
    appointment_id: Optional[str] = None,
    error_message: Optional[str] = None,
    external_message_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Builds one notification_logs row. Inbound rows carry received_at,
    outbound rows carry sent_at.
    """
    entry = {
        "user_id": user_id,
        "appointment_id": appointment_id,
        "notification_type": notification_type,
        "channel": channel,
        "phone_number": phone_number,
        "message_content": message_content,
        "status": status,
        "external_message_id": external_message_id,
        "error_message": error_message,
    }
    if status in (LogStatus.RECEIVED.value, LogStatus.UNMATCHED.value):
        entry["received_at"] = at
    else:
        entry["sent_at"] = at
    return entry

async def log_notifications(repository, entries: List[Dict[str, Any]]):
    """
    Appends audit rows to the 'notification_logs' table. The log is write-only
    from the workflow's point of view, so a failure here is reported and
    swallowed.
    """
    if not entries:
        return
    try:
        repository.insert_notification_logs(entries)
        for entry in entries:
            logger.info(
                f"Notification logged: {entry['notification_type']} | {entry['channel']} | "
                f"{entry['phone_number']} | {entry['status']}"
            )
    except Exception as e:
        logger.error(f"Failed to log notification to Supabase: {e}")
