from datetime import datetime, date, time
from typing import Any, Dict, Optional
import pytz

from app.core.config import settings


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


def business_tz():
    return pytz.timezone(settings.timezone)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parses an ISO timestamp as returned by PostgREST. Naive values are taken
    to be UTC.
    """
    if not value:
        return None
    dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt


def parse_time(value: str) -> time:
    # "14:00" and "14:00:00" both appear in the appointments table
    parts = [int(p) for p in value.split(":")]
    while len(parts) < 3:
        parts.append(0)
    return time(parts[0], parts[1], parts[2])


def appointment_start(appointment: Dict[str, Any]) -> datetime:
    """Start of the appointment as an aware datetime in the business time zone."""
    day = date.fromisoformat(appointment["date"])
    naive = datetime.combine(day, parse_time(appointment["start_time"]))
    return business_tz().localize(naive)


def appointment_end(appointment: Dict[str, Any]) -> datetime:
    day = date.fromisoformat(appointment["date"])
    naive = datetime.combine(day, parse_time(appointment.get("end_time") or appointment["start_time"]))
    return business_tz().localize(naive)


def hours_until(start: datetime, now: datetime) -> float:
    return (start - now).total_seconds() / 3600


def local_today(now: datetime) -> date:
    return now.astimezone(business_tz()).date()


def format_date_he(value: str) -> str:
    """Renders YYYY-MM-DD the way he-IL locale does (D.M.YYYY)."""
    d = date.fromisoformat(value)
    return f"{d.day}.{d.month}.{d.year}"


def format_time(value: str) -> str:
    return value[:5]
