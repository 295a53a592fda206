"""
Classifies a customer's free-text reply to a reminder.

Matching is substring containment on the normalized text, so a longer word
that happens to contain a keyword (e.g. "מלא" contains "לא") is classified by
that keyword. A reply that hits both lists is treated as unknown.
"""
import enum
import re
from typing import Dict, Tuple


class ResponseType(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


KEYWORDS: Dict[ResponseType, Tuple[str, ...]] = {
    ResponseType.CONFIRMED: ("כן", "אישור", "מאשר", "מאשרת", "בסדר", "אוקיי", "ok", "yes"),
    ResponseType.CANCELLED: ("לא", "ביטול", "מבטל", "מבטלת", "לבטל", "cancel", "no"),
}

# Everything except Hebrew letters (alef..tav) and Latin letters
_NON_LETTERS = re.compile(r"[^א-תA-Za-z]")


def normalize_response(text: str) -> str:
    return _NON_LETTERS.sub("", text.strip().lower())


def classify_response(text: str) -> ResponseType:
    normalized = normalize_response(text or "")
    matched = [
        response_type
        for response_type, words in KEYWORDS.items()
        if any(word in normalized for word in words)
    ]
    if len(matched) == 1:
        return matched[0]
    return ResponseType.UNKNOWN
