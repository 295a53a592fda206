import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from pydantic import BaseModel

from app.core.config import settings
from app.core.exceptions import NotFound, ValidationFailed
from app.core.timeutils import appointment_end, appointment_start, utc_now
from app.models.appointment import CalendarAction
from app.services.appointment_state import is_cancelled

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]

CANCELLED_TITLE_PREFIX = "בוטל - "


class SyncResult(BaseModel):
    success: bool
    action: CalendarAction
    status: str  # synced | removed | skipped | failed
    external_id: Optional[str] = None
    error: Optional[str] = None


class CalendarService:
    """
    Mirrors appointment changes to the business owner's Google Calendar.
    The appointments table is the source of truth; every call here is best
    effort and reports failure in its result instead of raising.
    """
    def __init__(self, repository, clock: Callable[[], datetime] = utc_now):
        self.repository = repository
        self.clock = clock

    def _get_credentials_for_owner(self, user_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Fetch the owner's service-account credentials from Supabase."""
        try:
            data = self.repository.get_calendar_settings(user_id)
            if data and data.get("google_service_account_json"):
                return {
                    "creds_info": json.loads(data["google_service_account_json"]),
                    "calendar_id": data.get("google_calendar_id") or "primary"
                }
        except Exception as e:
            logger.error(f"Failed to fetch calendar credentials for user {user_id}: {e}")
        return None

    def get_service_for_owner(self, user_id: Optional[str]) -> Tuple[Any, Optional[str]]:
        """Initializes a Google Calendar service for the owner, or (None, None) when not connected."""
        owner_creds = self._get_credentials_for_owner(user_id)
        if not owner_creds:
            return None, None

        creds = service_account.Credentials.from_service_account_info(
            owner_creds["creds_info"], scopes=SCOPES
        )
        service = build("calendar", "v3", credentials=creds, cache_discovery=False)
        return service, owner_creds["calendar_id"]

    def _event_body(self, appointment: Dict[str, Any]) -> Dict[str, Any]:
        customer = appointment.get("customers") or {}
        summary = f"{appointment.get('service_type')}: {customer.get('full_name') or ''}".strip()
        cancelled = is_cancelled(appointment)
        if cancelled:
            summary = CANCELLED_TITLE_PREFIX + summary

        description = f"Phone: {customer.get('phone_number') or ''}\nAppointmentID: {appointment['id']}"
        if cancelled and appointment.get("cancel_reason"):
            description += f"\nCancel reason: {appointment['cancel_reason']}"

        return {
            'summary': summary,
            'description': description,
            'start': {
                'dateTime': appointment_start(appointment).isoformat(),
                'timeZone': settings.timezone
            },
            'end': {
                'dateTime': appointment_end(appointment).isoformat(),
                'timeZone': settings.timezone
            },
            # A cancelled slot stays visible but no longer blocks the calendar
            'transparency': 'transparent' if cancelled else 'opaque',
        }

    async def sync(self, appointment: Dict[str, Any], action: CalendarAction) -> SyncResult:
        appointment_id = appointment.get("id")
        try:
            service, calendar_id = self.get_service_for_owner(appointment.get("user_id"))
            if service is None:
                logger.debug(f"No calendar connected for appointment {appointment_id}, skipping {action.value}")
                return SyncResult(success=True, action=action, status="skipped")

            external_id = appointment.get("external_calendar_id")

            if action == CalendarAction.DELETE:
                if external_id:
                    try:
                        service.events().delete(calendarId=calendar_id, eventId=external_id).execute()
                    except HttpError as e:
                        # Already gone on the calendar side
                        if e.resp.status not in (404, 410):
                            raise
                self._record(appointment_id, {"external_calendar_id": None, "calendar_sync_status": "removed"})
                logger.info(f"Removed appointment {appointment_id} from Google Calendar")
                return SyncResult(success=True, action=action, status="removed")

            body = self._event_body(appointment)
            if action == CalendarAction.UPDATE and external_id:
                event = service.events().patch(calendarId=calendar_id, eventId=external_id, body=body).execute()
            else:
                event = service.events().insert(calendarId=calendar_id, body=body).execute()

            event_id = event.get("id")
            self._record(appointment_id, {"external_calendar_id": event_id, "calendar_sync_status": "synced"})
            logger.info(f"SUCCESS: Synced appointment {appointment_id} to GCal ({action.value}). Event ID: {event_id}")
            return SyncResult(success=True, action=action, status="synced", external_id=event_id)

        except Exception as e:
            logger.exception(f"Failed to {action.value} appointment {appointment_id} on Google Calendar: {e}")
            try:
                self._record(appointment_id, {"calendar_sync_status": "failed"})
            except Exception as record_error:
                logger.error(f"Could not record sync failure for appointment {appointment_id}: {record_error}")
            return SyncResult(success=False, action=action, status="failed", error=str(e))

    async def sync_by_id(self, appointment_id: Optional[str], action: str) -> SyncResult:
        if not appointment_id:
            raise ValidationFailed("appointmentId is required")
        try:
            calendar_action = CalendarAction(action)
        except ValueError:
            raise ValidationFailed(f"Unsupported calendar action: {action}")

        appointment = self.repository.get_appointment(appointment_id)
        if not appointment:
            raise NotFound("Appointment not found")
        return await self.sync(appointment, calendar_action)

    def _record(self, appointment_id: str, data: Dict[str, Any]):
        data["last_sync_at"] = self.clock().isoformat()
        self.repository.update_appointment(appointment_id, data)
