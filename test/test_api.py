"""HTTP surface: request/response shapes and error mapping."""

from datetime import timedelta

from app.api.deps import get_current_user
from app.core.config import settings
from app.main import app
from conftest import NOW, OWNER_ID

API = "/api/v1"


def issue_token(repo, token="tok-1", appointment_id="appt-1", expires_in=timedelta(hours=24)):
    repo.tokens[token] = {
        "token": token,
        "appointment_id": appointment_id,
        "expires_at": (NOW + expires_in).isoformat(),
        "used": False,
    }
    return token


class TestCancellationEndpoint:
    def test_cancel(self, client, repo):
        repo.add_appointment("appt-1", date="2025-01-15", start_time="12:00:00")
        issue_token(repo)

        response = client.post(f"{API}/appointment-cancellation", json={"token": "tok-1", "reason": "מחלה"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Appointment cancelled successfully"
        assert body["isLateCancellation"] is True
        assert body["appointment"]["id"] == "appt-1"
        assert body["appointment"]["status"] == "cancelled"
        assert body["appointment"]["customer_name"] == "דנה כהן"

    def test_validate(self, client, repo):
        repo.add_appointment("appt-1")
        issue_token(repo)

        response = client.post(f"{API}/appointment-cancellation", json={"token": "tok-1", "action": "validate"})

        assert response.status_code == 200
        body = response.json()
        assert body["isExpired"] is False
        assert body["isUsed"] is False
        assert body["isCancelled"] is False
        assert body["isLateCancellation"] is False
        assert "success" not in body
        assert repo.appointments["appt-1"]["status"] == "scheduled"

    def test_already_cancelled(self, client, repo):
        repo.add_appointment("appt-1", status="cancelled", confirmation_status="cancelled")
        issue_token(repo)

        response = client.post(f"{API}/appointment-cancellation", json={"token": "tok-1"})

        assert response.status_code == 200
        assert response.json()["message"] == "Appointment is already cancelled"

    def test_reused_token(self, client, repo):
        repo.add_appointment("appt-1")
        issue_token(repo)
        client.post(f"{API}/appointment-cancellation", json={"token": "tok-1"})

        response = client.post(f"{API}/appointment-cancellation", json={"token": "tok-1"})

        assert response.status_code == 404
        assert response.json() == {"error": "Cancellation token has already been used"}

    def test_expired_token(self, client, repo):
        repo.add_appointment("appt-1")
        issue_token(repo, expires_in=timedelta(minutes=-5))

        response = client.post(f"{API}/appointment-cancellation", json={"token": "tok-1"})

        assert response.status_code == 404
        assert response.json() == {"error": "Cancellation token has expired"}

    def test_missing_token(self, client):
        response = client.post(f"{API}/appointment-cancellation", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Token is required"}

    def test_unknown_action_is_a_bad_request(self, client):
        response = client.post(f"{API}/appointment-cancellation", json={"token": "tok-1", "action": "delete"})

        assert response.status_code == 400
        assert "error" in response.json()


class TestNotificationEndpoint:
    def test_send(self, client, repo, whatsapp):
        repo.add_appointment("appt-1")

        response = client.post(f"{API}/whatsapp-notification", json={
            "appointmentId": "appt-1",
            "notificationType": "confirmation",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["method"] == "whatsapp"
        assert body["whatsappStatus"] == "sent"
        assert body["smsStatus"] == "not_attempted"
        assert len(whatsapp.calls) == 1

    def test_sms_fallback(self, client, repo, whatsapp, sms):
        whatsapp.success = False
        repo.add_appointment("appt-1")

        body = client.post(f"{API}/whatsapp-notification", json={
            "appointmentId": "appt-1",
            "notificationType": "cancellation",
        }).json()

        assert body["method"] == "sms"
        assert body["whatsappStatus"] == "failed"
        assert body["smsStatus"] == "sent"

    def test_direct_custom_message(self, client, whatsapp):
        response = client.post(f"{API}/whatsapp-notification", json={
            "notificationType": "custom",
            "phoneNumber": "0541111111",
            "customMessage": "שלום",
        })

        assert response.status_code == 200
        assert whatsapp.calls[0]["text"] == "שלום"

    def test_missing_parameters(self, client):
        response = client.post(f"{API}/whatsapp-notification", json={"notificationType": "confirmation"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required parameters"}

    def test_unknown_appointment(self, client):
        response = client.post(f"{API}/whatsapp-notification", json={
            "appointmentId": "missing",
            "notificationType": "confirmation",
        })

        assert response.status_code == 404
        assert response.json() == {"error": "Appointment not found"}

    def test_malformed_body(self, client):
        response = client.post(f"{API}/whatsapp-notification", json={"appointmentId": "appt-1"})

        assert response.status_code == 400
        assert "error" in response.json()


class TestResponsesEndpoint:
    def test_confirmation_reply(self, client, repo):
        repo.add_appointment("appt-1", reminder_sent_at="2025-01-14T08:00:00+00:00")

        response = client.post(f"{API}/whatsapp-responses", json={"from": "972501234567", "text": "כן"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["appointmentId"] == "appt-1"
        assert body["responseType"] == "confirmed"
        assert body["confirmationStatus"] == "confirmed"
        assert "סטודיו יופי" in body["reply"]

    def test_no_match(self, client):
        response = client.post(f"{API}/whatsapp-responses", json={"from": "972501234567", "text": "כן"})

        assert response.status_code == 200
        assert response.json() == {"message": "no match"}

    def test_delivery_status_callback_is_acknowledged(self, client, repo):
        response = client.post(f"{API}/whatsapp-responses", json={
            "object": "whatsapp_business_account",
            "entry": [{"changes": [{"value": {"statuses": [{"id": "wamid.1", "status": "delivered"}]}}]}],
        })

        assert response.status_code == 200
        assert response.json() == {"message": "ignored"}
        assert repo.logs == []

    def test_reply_to_completed_appointment_is_not_an_error(self, client, repo):
        repo.add_appointment("appt-1", status="completed", reminder_sent_at="2025-01-14T08:00:00+00:00")

        response = client.post(f"{API}/whatsapp-responses", json={"from": "972501234567", "text": "כן"})

        assert response.status_code == 200
        assert response.json() == {"message": "no match"}

    def test_missing_fields(self, client):
        response = client.post(f"{API}/whatsapp-responses", json={"text": "כן"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}

    def test_invalid_json(self, client):
        response = client.post(
            f"{API}/whatsapp-responses", content="not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON"}

    def test_non_object_payload(self, client):
        response = client.post(f"{API}/whatsapp-responses", json=["כן"])

        assert response.status_code == 400

    def test_webhook_verification(self, client):
        response = client.get(f"{API}/whatsapp-responses", params={
            "hub.mode": "subscribe",
            "hub.verify_token": settings.meta_verify_token,
            "hub.challenge": "1158201444",
        })

        assert response.status_code == 200
        assert response.json() == 1158201444

    def test_webhook_verification_rejects_wrong_token(self, client):
        response = client.get(f"{API}/whatsapp-responses", params={
            "hub.mode": "subscribe",
            "hub.verify_token": "guess",
            "hub.challenge": "1",
        })

        assert response.status_code == 403


class TestBatchEndpoints:
    def test_reminders(self, client, repo):
        repo.add_appointment("appt-1", date="2025-01-16", start_time="10:00:00")

        response = client.post(f"{API}/appointment-reminders", json={})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Processed 1 appointments"
        assert body["totalProcessed"] == 1
        assert body["results"][0]["appointmentId"] == "appt-1"
        assert body["results"][0]["status"] == "sent"
        assert body["results"][0]["notificationType"] == "reminder_24h"

    def test_daily_summary(self, client, repo):
        repo.preferences[OWNER_ID] = {"user_id": OWNER_ID, "daily_summary_enabled": True}

        response = client.post(f"{API}/daily-summary", json={"date": "2025-01-14"})

        assert response.status_code == 200
        body = response.json()
        assert body["date"] == "2025-01-14"
        assert body["results"][0]["userId"] == OWNER_ID
        assert body["results"][0]["status"] == "sent"

    def test_daily_summary_defaults_to_today(self, client):
        response = client.post(f"{API}/daily-summary")

        assert response.status_code == 200
        assert response.json()["date"] == "2025-01-15"

    def test_calendar_sync_without_connected_calendar(self, client, repo):
        repo.add_appointment("appt-1")

        response = client.post(f"{API}/calendar-sync", json={"appointmentId": "appt-1", "action": "update"})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "action": "update",
            "status": "skipped",
            "externalId": None,
            "error": None,
        }

    def test_calendar_sync_unknown_action(self, client, repo):
        repo.add_appointment("appt-1")

        response = client.post(f"{API}/calendar-sync", json={"appointmentId": "appt-1", "action": "move"})

        assert response.status_code == 400


class TestOwnerEndpoints:
    def test_preferences_default(self, client):
        response = client.get(f"{API}/notification-preferences")

        assert response.status_code == 200
        assert response.json() == {
            "whatsapp_enabled": True,
            "sms_fallback_enabled": True,
            "daily_summary_enabled": False,
        }

    def test_update_preferences(self, client, repo):
        response = client.put(f"{API}/notification-preferences", json={"sms_fallback_enabled": False})

        assert response.status_code == 200
        assert response.json()["sms_fallback_enabled"] is False
        assert response.json()["whatsapp_enabled"] is True
        assert repo.preferences[OWNER_ID]["sms_fallback_enabled"] is False

    def test_empty_update_is_rejected(self, client):
        response = client.put(f"{API}/notification-preferences", json={})

        assert response.status_code == 400

    def test_notification_logs(self, client, repo):
        repo.add_appointment("appt-1")
        client.post(f"{API}/whatsapp-notification", json={"appointmentId": "appt-1", "notificationType": "cancellation"})
        client.post(f"{API}/whatsapp-notification", json={"appointmentId": "appt-1", "notificationType": "confirmation"})

        response = client.get(f"{API}/notification-logs", params={"notificationType": "cancellation"})

        assert response.status_code == 200
        logs = response.json()
        assert len(logs) == 1
        assert logs[0]["notification_type"] == "cancellation"
        assert logs[0]["channel"] == "whatsapp"

    def test_owner_endpoints_require_a_token(self, client):
        del app.dependency_overrides[get_current_user]

        response = client.get(f"{API}/notification-preferences")

        assert response.status_code in (401, 403)
