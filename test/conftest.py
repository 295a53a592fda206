"""
Pytest configuration and shared fixtures for the notification workflow tests.

All tests run against FakeRepository, an in-memory stand-in for
SupabaseRepository, with a frozen clock and recording message senders.
"""

import copy
from datetime import datetime
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
import pytz
from fastapi.testclient import TestClient

from app.api.deps import (
    get_clock,
    get_current_user,
    get_repository,
    get_sms_sender,
    get_whatsapp_sender,
)
from app.main import app
from app.schemas.delivery import DeliveryResult
from app.services.calendar_service import CalendarService
from app.services.cancellation import CancellationService
from app.services.cancellation_tokens import CancellationTokenService
from app.services.daily_summary import DailySummaryJob
from app.services.inbound_responses import InboundResponseService
from app.services.notification_service import NotificationDispatcher
from app.services.reminders import ReminderJob
from app.services.waiting_list import WaitingListPromoter

# 10:00 on Wednesday 15.1.2025 in Asia/Jerusalem (UTC+2 in winter)
NOW = datetime(2025, 1, 15, 8, 0, tzinfo=pytz.utc)
OWNER_ID = "owner-1"
CUSTOMER_PHONE = "050-123-4567"
BUSINESS_PHONE = "0529999999"


def fixed_clock() -> datetime:
    return NOW


class FakeRepository:
    """Same methods as SupabaseRepository, backed by dicts and lists."""

    def __init__(self):
        self.appointments: Dict[str, Dict[str, Any]] = {}
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.users: Dict[str, Dict[str, Any]] = {}
        self.tokens: Dict[str, Dict[str, Any]] = {}
        self.waiting_list: List[Dict[str, Any]] = []
        self.preferences: Dict[str, Dict[str, Any]] = {}
        self.whatsapp_settings: Dict[str, Dict[str, Any]] = {}
        self.calendar_settings: Dict[str, Dict[str, Any]] = {}
        self.templates: Dict[tuple, str] = {}
        self.logs: List[Dict[str, Any]] = []
        self.revenues: List[Dict[str, Any]] = []
        self.expenses: List[Dict[str, Any]] = []
        self.fail_updates = False

    # --- seeding helpers ---

    def add_customer(self, customer_id: str, full_name: str, phone_number: Optional[str]):
        self.customers[customer_id] = {
            "id": customer_id,
            "full_name": full_name,
            "email": None,
            "phone_number": phone_number,
        }

    def add_appointment(self, appointment_id: str, **fields) -> Dict[str, Any]:
        row = {
            "id": appointment_id,
            "user_id": OWNER_ID,
            "customer_id": "cust-1",
            "employee_id": None,
            "service_type": "מניקור",
            "date": "2025-01-16",
            "start_time": "10:00:00",
            "end_time": "11:00:00",
            "status": "scheduled",
            "confirmation_status": "pending",
            "reminder_sent_at": None,
            "external_calendar_id": None,
        }
        row.update(fields)
        self.appointments[appointment_id] = row
        return row

    def add_waiting_entry(self, entry_id: str, customer_id: str, service_type: str, created_at: str):
        self.waiting_list.append({
            "id": entry_id,
            "customer_id": customer_id,
            "service_type": service_type,
            "status": "waiting",
            "created_at": created_at,
        })

    def waiting_entry(self, entry_id: str) -> Dict[str, Any]:
        return next(e for e in self.waiting_list if e["id"] == entry_id)

    def logs_of(self, notification_type: str) -> List[Dict[str, Any]]:
        return [log for log in self.logs if log["notification_type"] == notification_type]

    def _with_customer(self, row: Dict[str, Any]) -> Dict[str, Any]:
        result = copy.deepcopy(row)
        customer = self.customers.get(row.get("customer_id"))
        result["customers"] = copy.deepcopy(customer) if customer else None
        return result

    # --- appointments ---

    def get_appointment(self, appointment_id):
        row = self.appointments.get(appointment_id)
        return self._with_customer(row) if row else None

    def update_appointment(self, appointment_id, data):
        if self.fail_updates or appointment_id not in self.appointments:
            return None
        self.appointments[appointment_id].update(data)
        return copy.deepcopy(self.appointments[appointment_id])

    def list_reminder_candidates(self, start_date, end_date):
        rows = [
            a for a in self.appointments.values()
            if start_date <= a["date"] <= end_date
            and a["status"] == "scheduled"
            and a.get("reminder_sent_at") is None
        ]
        rows.sort(key=lambda a: (a["date"], a["start_time"]))
        return [self._with_customer(a) for a in rows]

    def list_pending_confirmations(self, since_date):
        rows = [
            a for a in self.appointments.values()
            if a["status"] == "scheduled"
            and a["confirmation_status"] == "pending"
            and a["date"] >= since_date
            and a.get("reminder_sent_at") is not None
        ]
        rows.sort(key=lambda a: (a["date"], a["start_time"]))
        return [self._with_customer(a) for a in rows]

    def list_appointments_on(self, user_id, day, statuses):
        return [
            self._with_customer(a) for a in self.appointments.values()
            if a["user_id"] == user_id and a["date"] == day and a["status"] in statuses
        ]

    def get_user_name(self, user_id):
        user = self.users.get(user_id) if user_id else None
        return user.get("full_name") if user else None

    # --- cancellation tokens ---

    def create_cancellation_token(self, row):
        self.tokens[row["token"]] = dict(row)
        return dict(row)

    def get_cancellation_token(self, token):
        row = self.tokens.get(token)
        return dict(row) if row else None

    def claim_cancellation_token(self, token, used_at):
        row = self.tokens.get(token)
        if not row or row.get("used"):
            return False
        row.update({"used": True, "used_at": used_at})
        return True

    def release_cancellation_token(self, token):
        if token in self.tokens:
            self.tokens[token].update({"used": False, "used_at": None})

    # --- waiting list ---

    def list_waiting_entries(self, service_type, limit):
        rows = [e for e in self.waiting_list if e["service_type"] == service_type and e["status"] == "waiting"]
        rows.sort(key=lambda e: e["created_at"])
        return [self._with_customer(e) for e in rows[:limit]]

    def mark_waiting_entry_notified(self, entry_id, updated_at):
        self.waiting_entry(entry_id).update({"status": "notified", "updated_at": updated_at})

    # --- business settings ---

    def get_notification_preferences(self, user_id):
        row = self.preferences.get(user_id)
        return dict(row) if row else None

    def upsert_notification_preferences(self, user_id, data):
        row = {**self.preferences.get(user_id, {}), **data, "user_id": user_id}
        self.preferences[user_id] = row
        return dict(row)

    def list_daily_summary_recipients(self):
        return [dict(p) for p in self.preferences.values() if p.get("daily_summary_enabled")]

    def get_whatsapp_settings(self, user_id):
        row = self.whatsapp_settings.get(user_id)
        return dict(row) if row else None

    def get_calendar_settings(self, user_id):
        row = self.calendar_settings.get(user_id)
        return dict(row) if row else None

    def get_message_template(self, user_id, template_type):
        return self.templates.get((user_id, template_type))

    # --- notification log ---

    def insert_notification_logs(self, rows):
        for row in rows:
            self.logs.append({
                "id": f"log-{len(self.logs) + 1}",
                "created_at": NOW.isoformat(),
                **row,
            })

    def list_notification_logs(self, user_id, notification_type, limit, offset):
        rows = [log for log in reversed(self.logs) if log["user_id"] == user_id]
        if notification_type:
            rows = [log for log in rows if log["notification_type"] == notification_type]
        return rows[offset:offset + limit]

    # --- finances ---

    def list_revenues(self, user_id, day):
        return [r for r in self.revenues if r["created_by"] == user_id and r["date"] == day]

    def list_expenses(self, user_id, day):
        return [e for e in self.expenses if e["created_by"] == user_id and e["date"] == day]


class FakeSender:
    """Records every send and answers with a fixed outcome."""

    def __init__(self, success: bool = True, error: str = "provider rejected the message", raises: Exception = None):
        self.success = success
        self.error = error
        self.raises = raises
        self.calls: List[Dict[str, Any]] = []

    async def __call__(self, phone: str, text: str, business: Dict[str, Any]) -> DeliveryResult:
        self.calls.append({"phone": phone, "text": text, "business": business})
        if self.raises:
            raise self.raises
        if self.success:
            return DeliveryResult(success=True, external_id=f"msg-{len(self.calls)}")
        return DeliveryResult(success=False, error=self.error)


@pytest.fixture
def repo():
    repository = FakeRepository()
    repository.add_customer("cust-1", "דנה כהן", CUSTOMER_PHONE)
    repository.whatsapp_settings[OWNER_ID] = {
        "user_id": OWNER_ID,
        "business_name": "סטודיו יופי",
        "business_whatsapp_number": BUSINESS_PHONE,
    }
    return repository


@pytest.fixture
def whatsapp():
    return FakeSender()


@pytest.fixture
def sms():
    return FakeSender()


@pytest.fixture
def token_service(repo):
    return CancellationTokenService(repo, clock=fixed_clock)


@pytest.fixture
def dispatcher(repo, token_service, whatsapp, sms):
    return NotificationDispatcher(repo, token_service, whatsapp=whatsapp, sms=sms, clock=fixed_clock)


@pytest.fixture
def calendar(repo):
    return CalendarService(repo, clock=fixed_clock)


@pytest.fixture
def promoter(repo, dispatcher):
    return WaitingListPromoter(repo, dispatcher, clock=fixed_clock)


@pytest.fixture
def cancellation_service(repo, token_service, dispatcher, promoter, calendar):
    return CancellationService(repo, token_service, dispatcher, promoter, calendar, clock=fixed_clock)


@pytest.fixture
def inbound_service(repo, dispatcher, promoter, calendar):
    return InboundResponseService(repo, dispatcher, promoter, calendar, clock=fixed_clock)


@pytest.fixture
def reminder_job(repo, dispatcher):
    return ReminderJob(repo, dispatcher, clock=fixed_clock)


@pytest.fixture
def daily_summary_job(repo, dispatcher):
    return DailySummaryJob(repo, dispatcher, clock=fixed_clock)


@pytest.fixture
def client(repo, whatsapp, sms):
    """TestClient wired to the fake repository, frozen clock and recording senders."""
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    app.dependency_overrides[get_whatsapp_sender] = lambda: whatsapp
    app.dependency_overrides[get_sms_sender] = lambda: sms
    app.dependency_overrides[get_current_user] = lambda: SimpleNamespace(id=OWNER_ID)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
