"""Phone number normalization shared by the messaging channels and the inbound matcher"""

import re
from typing import Optional

from app.core.config import settings


def normalize_phone(phone: Optional[str], country_code: Optional[str] = None) -> str:
    """
    Canonical form used for matching: digits only, with a local leading "0"
    replaced by the country code.

    "050-123-4567", "0501234567", "+972 50 123 4567" and "972501234567" all
    normalize to "972501234567".
    """
    if not phone:
        return ""

    code = country_code or settings.country_code
    digits = re.sub(r"\D", "", phone)

    if digits.startswith("00"):
        digits = digits[2:]
    elif digits.startswith("0"):
        digits = code + digits[1:]

    return digits


def to_e164(phone: Optional[str]) -> str:
    """E.164 format (+972501234567) as required by Twilio."""
    digits = normalize_phone(phone)
    return f"+{digits}" if digits else ""
