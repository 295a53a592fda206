import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from app.core.supabase_client import get_supabase
from app.models.appointment import APPOINTMENT_SELECT, AppointmentStatus, ConfirmationStatus, WaitingListStatus

logger = logging.getLogger(__name__)


class SupabaseRepository:
    """
    All table access used by the workflow. Services receive an instance of this
    class (or a test double with the same methods) instead of reaching for the
    client themselves.
    """
    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase()
        return self._client

    # --- appointments ---

    def get_appointment(self, appointment_id: str) -> Optional[Dict[str, Any]]:
        res = self.client.table("appointments").select(APPOINTMENT_SELECT).eq("id", appointment_id).limit(1).execute()
        return res.data[0] if res.data else None

    def update_appointment(self, appointment_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        res = self.client.table("appointments").update(data).eq("id", appointment_id).execute()
        return res.data[0] if res.data else None

    def list_reminder_candidates(self, start_date: str, end_date: str) -> List[Dict[str, Any]]:
        """Scheduled appointments in the date range that have not been reminded yet."""
        res = self.client.table("appointments")\
            .select(APPOINTMENT_SELECT)\
            .gte("date", start_date)\
            .lte("date", end_date)\
            .eq("status", AppointmentStatus.SCHEDULED.value)\
            .is_("reminder_sent_at", "null")\
            .order("date")\
            .order("start_time")\
            .execute()
        return res.data or []

    def list_pending_confirmations(self, since_date: str) -> List[Dict[str, Any]]:
        """Reminded appointments still waiting for the customer's answer."""
        res = self.client.table("appointments")\
            .select(APPOINTMENT_SELECT)\
            .eq("status", AppointmentStatus.SCHEDULED.value)\
            .eq("confirmation_status", ConfirmationStatus.PENDING.value)\
            .gte("date", since_date)\
            .not_.is_("reminder_sent_at", "null")\
            .order("date")\
            .order("start_time")\
            .execute()
        return res.data or []

    def list_appointments_on(self, user_id: str, day: str, statuses: List[str]) -> List[Dict[str, Any]]:
        res = self.client.table("appointments")\
            .select(APPOINTMENT_SELECT)\
            .eq("user_id", user_id)\
            .eq("date", day)\
            .in_("status", statuses)\
            .execute()
        return res.data or []

    def get_user_name(self, user_id: Optional[str]) -> Optional[str]:
        if not user_id:
            return None
        res = self.client.table("users").select("full_name").eq("id", user_id).limit(1).execute()
        return res.data[0].get("full_name") if res.data else None

    # --- cancellation tokens ---

    def create_cancellation_token(self, row: Dict[str, Any]) -> Dict[str, Any]:
        res = self.client.table("cancellation_tokens").insert(row).execute()
        if not res.data:
            raise Exception(f"Failed to store cancellation token for appointment {row.get('appointment_id')}")
        return res.data[0]

    def get_cancellation_token(self, token: str) -> Optional[Dict[str, Any]]:
        res = self.client.table("cancellation_tokens").select("*").eq("token", token).limit(1).execute()
        return res.data[0] if res.data else None

    def claim_cancellation_token(self, token: str, used_at: str) -> bool:
        """
        Marks the token used only if it is still unused. Returns False when
        another request already claimed it.
        """
        res = self.client.table("cancellation_tokens")\
            .update({"used": True, "used_at": used_at})\
            .eq("token", token)\
            .eq("used", False)\
            .execute()
        return bool(res.data)

    def release_cancellation_token(self, token: str) -> None:
        """Undoes a claim whose cancellation could not be stored."""
        self.client.table("cancellation_tokens")\
            .update({"used": False, "used_at": None})\
            .eq("token", token)\
            .execute()

    # --- waiting list ---

    def list_waiting_entries(self, service_type: str, limit: int) -> List[Dict[str, Any]]:
        res = self.client.table("appointment_waiting_list")\
            .select("*, customers:customer_id (id, full_name, phone_number)")\
            .eq("service_type", service_type)\
            .eq("status", WaitingListStatus.WAITING.value)\
            .order("created_at")\
            .limit(limit)\
            .execute()
        return res.data or []

    def mark_waiting_entry_notified(self, entry_id: str, updated_at: str) -> None:
        self.client.table("appointment_waiting_list")\
            .update({"status": WaitingListStatus.NOTIFIED.value, "updated_at": updated_at})\
            .eq("id", entry_id)\
            .execute()

    # --- business settings ---

    def get_notification_preferences(self, user_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not user_id:
            return None
        res = self.client.table("notification_preferences").select("*").eq("user_id", user_id).limit(1).execute()
        return res.data[0] if res.data else None

    def upsert_notification_preferences(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        payload = {**data, "user_id": user_id}
        res = self.client.table("notification_preferences").upsert(payload, on_conflict="user_id").execute()
        if not res.data:
            raise Exception(f"Failed to save notification preferences for user {user_id}")
        return res.data[0]

    def list_daily_summary_recipients(self) -> List[Dict[str, Any]]:
        res = self.client.table("notification_preferences").select("*").eq("daily_summary_enabled", True).execute()
        return res.data or []

    def get_whatsapp_settings(self, user_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not user_id:
            return None
        res = self.client.table("user_whatsapp_settings").select("*").eq("user_id", user_id).limit(1).execute()
        return res.data[0] if res.data else None

    def get_calendar_settings(self, user_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not user_id:
            return None
        res = self.client.table("business_settings")\
            .select("google_service_account_json, google_calendar_id")\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        return res.data[0] if res.data else None

    def get_message_template(self, user_id: Optional[str], template_type: str) -> Optional[str]:
        if not user_id:
            return None
        res = self.client.table("message_templates")\
            .select("content")\
            .eq("user_id", user_id)\
            .eq("template_type", template_type)\
            .order("is_default", desc=True)\
            .limit(1)\
            .execute()
        return res.data[0].get("content") if res.data else None

    # --- notification log ---

    def insert_notification_logs(self, rows: List[Dict[str, Any]]) -> None:
        self.client.table("notification_logs").insert(rows).execute()

    def list_notification_logs(self, user_id: str, notification_type: Optional[str], limit: int, offset: int) -> List[Dict[str, Any]]:
        query = self.client.table("notification_logs").select("*").eq("user_id", user_id).order("created_at", desc=True)
        if notification_type:
            query = query.eq("notification_type", notification_type)
        res = query.range(offset, offset + limit - 1).execute()
        return res.data or []

    # --- finances (daily summary) ---

    def list_revenues(self, user_id: str, day: str) -> List[Dict[str, Any]]:
        res = self.client.table("revenues").select("amount, source").eq("created_by", user_id).eq("date", day).execute()
        return res.data or []

    def list_expenses(self, user_id: str, day: str) -> List[Dict[str, Any]]:
        res = self.client.table("expenses").select("amount, category").eq("created_by", user_id).eq("date", day).execute()
        return res.data or []


# Singleton
repository = SupabaseRepository()
